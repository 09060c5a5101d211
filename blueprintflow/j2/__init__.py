"""BlueprintFlow template package.

Resolves conditional blocks, placeholders and condition expressions in blueprint
actions against an execution context, using a shared Jinja2 environment.
"""

from blueprintflow.j2.core import TemplateService
from blueprintflow.j2.exceptions import TemplateError

__all__ = [
    "TemplateError",
    "TemplateService",
]
