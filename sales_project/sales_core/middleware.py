from django.utils.deprecation import MiddlewareMixin

from .models import Company


class CurrentCompanyMiddleware(MiddlewareMixin):
    # Attach request.company for the logged-in user on every request
    def process_request(self, request):
        request.company = None
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return

        memberships = Company.objects.filter(
            memberships__user=user, memberships__is_active=True
        )

        # If user switched companies,
        # choice is stored in the session as "active_company_id"
        company_id = request.session.get("active_company_id")
        if company_id:
            # user must be a member of that company: a tampered session
            # id resolves to no company at all
            request.company = memberships.filter(pk=company_id).first()
        else:
            # Default: the first company the user belongs to
            request.company = memberships.order_by("id").first()
