class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.company (set by CurrentCompanyMiddleware).
    """

    def _get_request_company(self, request):
        return getattr(request, "company", None)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        company = self._get_request_company(request)

        # If superuser, show everything;
        # otherwise restrict to company if available
        if request.user.is_superuser:
            return qs
        if company is None:
            return qs.none()
        return qs.filter(company=company)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns (company, customer, product, ...)
        to the current company.
        """
        company = self._get_request_company(request)

        if db_field.name == "company" and not request.user.is_superuser:
            if company is not None:
                kwargs["queryset"] = db_field.related_model.objects.filter(
                    pk=company.pk
                )
            else:
                kwargs["queryset"] = db_field.related_model.objects.none()
            return super().formfield_for_foreignkey(db_field, request, **kwargs)

        # if related model has a `company` field,
        # restrict it to request's company
        rel_model = getattr(db_field, "related_model", None)
        if (
            rel_model is not None
            and hasattr(rel_model, "company")
            and not request.user.is_superuser
        ):
            if company is not None:
                kwargs["queryset"] = rel_model.objects.filter(company=company)
            else:
                kwargs["queryset"] = rel_model.objects.none()

        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by company on save (unless superuser)
        if not request.user.is_superuser:
            company = self._get_request_company(request)
            if company is not None:
                obj.company = company
        super().save_model(request, obj, form, change)
