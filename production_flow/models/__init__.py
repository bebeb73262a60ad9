"""
Production Flow Models Package
"""

from .template import (
    StageTemplate,
    StageDefinition
)
from .production_order import (
    ProductionOrder,
    derive_flow_status
)
from .stage import (
    ProductionStage,
    StageHoldLog
)

__all__ = [
    # Templates
    'StageTemplate',
    'StageDefinition',

    # Orders
    'ProductionOrder',
    'derive_flow_status',

    # Stages
    'ProductionStage',
    'StageHoldLog',
]
