from rest_framework.permissions import BasePermission


class HasCompanyContext(BasePermission):
    """
    Only allow authenticated requests that carry a company context.
    The company id is set on the request by CompanyContextMiddleware.
    """
    message = 'Company context header (X-Company-Id) is required.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(getattr(request, 'company_id', None))
