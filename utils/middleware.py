from django.conf import settings
from django.utils.deprecation import MiddlewareMixin


class CompanyContextMiddleware(MiddlewareMixin):
    """
    Attach the caller's company to the request
    The company is validated upstream; this only reads the header into request.company_id
    """

    def process_request(self, request):
        header = settings.PRODUCTION_FLOW_SETTINGS.get('COMPANY_HEADER', 'HTTP_X_COMPANY_ID')
        company_id = request.META.get(header, '').strip()
        request.company_id = company_id or None
        return None
