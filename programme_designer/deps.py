## Request-scoped collaborators
from programme_designer.store import ModuleStore
from programme_designer.templates.base import TemplateClient
from programme_designer.templates.client import get_template_client

def get_store() -> ModuleStore:
    return ModuleStore()

def get_templates() -> TemplateClient:
    return get_template_client()
