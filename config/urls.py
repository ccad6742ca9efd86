"""
Root URL configuration for org_settings.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from common.health import health_check

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health-check"),

    # OpenAPI schema & Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # Application API routes
    path("api/v1/", include("apps.organizations.urls")),
    path("api/v1/", include("apps.customizations.urls")),
    path("api/v1/", include("apps.departments.urls")),
]

# Uploaded logos; served by the web server in production
urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
