"""Template-specific exceptions for BlueprintFlow."""

from blueprintflow.exceptions import BlueprintFlowError


class TemplateServiceError(BlueprintFlowError):
    """Base exception for TemplateService-related errors."""


class TemplateError(TemplateServiceError):
    """
    Exception class for template rendering and condition evaluation errors.
    """

    def __init__(self, message: str = "", template: str = ""):
        # Truncate very long templates
        template_preview = template[:97] + "..." if len(template) > 100 else template  # noqa: PLR2004

        context = f" Template: '{template_preview}'" if template else ""
        super().__init__(f"{message}{context}")
        self.template = template
