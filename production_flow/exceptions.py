"""
Production flow and longation ledger errors

Each error carries the HTTP status it maps to, a stable code for API clients,
and whether retrying after re-reading state can succeed.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ProductionFlowError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'production_flow_error'
    default_message = 'Production flow operation failed'
    retryable = False

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Not found

class OrderNotFound(ProductionFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'order_not_found'
    default_message = 'Production order not found'


class StageNotFound(ProductionFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'stage_not_found'
    default_message = 'Production stage not found'


class LedgerEntryNotFound(ProductionFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'ledger_entry_not_found'
    default_message = 'Longation stock entry not found'


class AllocationNotFound(ProductionFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'allocation_not_found'
    default_message = 'Longation allocation not found'


# Configuration / validation

class TemplateNotFound(ProductionFlowError):
    code = 'template_not_found'
    default_message = 'No stage template configured for this product type'


class FlowValidationError(ProductionFlowError):
    code = 'validation_error'
    default_message = 'Invalid input'


# Precondition conflicts

class OrderNotApproved(ProductionFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = 'order_not_approved'
    default_message = 'Production order must be approved before its flow is initialized'


class AlreadyInitialized(ProductionFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = 'already_initialized'
    default_message = 'Production flow is already initialized'


class FlowNotInitialized(ProductionFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = 'flow_not_initialized'
    default_message = 'Production flow has not been initialized'


class PreviousStageIncomplete(ProductionFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = 'previous_stage_incomplete'
    default_message = 'Previous stage must be completed before starting this stage'


class StageAlreadyActive(ProductionFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = 'stage_already_active'
    default_message = 'Another stage of this order is already active'


class InvalidTransition(ProductionFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = 'invalid_transition'
    default_message = 'Operation not allowed in the current status'


class InsufficientStock(ProductionFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = 'insufficient_stock'
    default_message = 'Not enough longation stock available'
    retryable = True


def flow_exception_handler(exc, context):
    """DRF exception handler that renders ProductionFlowError as JSON"""
    if isinstance(exc, ProductionFlowError):
        view = context.get('view')
        logger.warning(
            f'{exc.code} in {view.__class__.__name__ if view else "unknown view"}: {exc.message}'
        )
        return Response(
            {'error': exc.message, 'code': exc.code, 'retryable': exc.retryable},
            status=exc.status_code
        )
    return exception_handler(exc, context)
