from programme_designer.settings import settings
from programme_designer.templates.base import TemplateClient
from programme_designer.templates.http import HttpTemplateClient
from programme_designer.templates.static import StaticTemplateClient

def get_template_client() -> TemplateClient:
    if settings.template_provider == "http":
        return HttpTemplateClient(
            base_url=settings.template_base_url,
            timeout=settings.template_timeout_seconds,
        )

    return StaticTemplateClient()
