from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from blueprintflow.exceptions import ModifierError, ModifierParameterError, ModifierTransformError


class Modifier(ABC):
    """
    Base class for content modifiers.

    A modifier is a pure function of two inputs: the current content of a file (None
    when the file does not exist) and the parameters given by the action. It returns
    the new content and never performs I/O. Instances only hold configuration (such
    as the JSON indent), never per-run state.

    Subclasses set ``name`` (the key actions use to reference them) and implement
    ``transform``. ``validate_parameters`` defaults to accepting any mapping.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""

    def validate_parameters(self, params: Any) -> bool:
        return isinstance(params, Mapping)

    @abstractmethod
    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        """Return the new content for a file given its current content and the parameters."""

    def apply(self, existing: str | None, params: Mapping[str, Any]) -> str:
        """
        Validate the parameters, then transform.

        Raises:
            ModifierParameterError: If validate_parameters rejects params.
            ModifierTransformError: If the content cannot be parsed or merged.
        """
        if not self.validate_parameters(params):
            shown = dict(params) if isinstance(params, Mapping) else params
            raise ModifierParameterError(f"Invalid parameters: {shown!r}", self.name)
        try:
            result = self.transform(existing, params)
        except ModifierError:
            raise
        except (ValueError, TypeError, KeyError) as e:
            raise ModifierTransformError(str(e), self.name) from e
        if not isinstance(result, str):
            raise ModifierTransformError(f"transform returned {type(result).__name__} instead of text", self.name)
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
