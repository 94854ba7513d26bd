"""Pydantic validation plugin (source of truth).

Rebuild exactly from this contract; no hidden behaviour.

Responsibilities
----------------
- When ``request.metadata.body_model`` names a Pydantic model, validate the
  request body with it before the next stage runs.
- Bytes and str bodies are validated as JSON (``model_validate_json``); any
  other body (dict, model instance, ...) with ``model_validate``.
- On success the body is replaced with ``model.model_dump(mode="json")`` so
  downstream controllers receive plain JSON-able data.
- Surface validation failures as Pydantic ``ValidationError`` with contextual
  title ``"Validation error in <METHOD> <uri>"``. The next stage does not run.
- Requests without ``body_model`` pass through untouched.

Configuration
-------------
- ``disabled`` (default False): when truthy the stage is a passthrough. Read
  at call time, per request method.
- ``get_model(request)`` returns the model that would be applied, or None.

Registration
------------
Registers itself globally as ``"pydantic"`` during module import via
``ResourceRepository.register_plugin(PydanticPlugin)``.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Type

from pydantic import BaseModel, ValidationError

from smartresource.core.messages import Request, ResourceContext
from smartresource.core.repository import ResourceRepository
from smartresource.plugins._base_plugin import BasePlugin


class PydanticPlugin(BasePlugin):
    """Validate request bodies with the Pydantic model carried in metadata."""

    plugin_code = "pydantic"
    plugin_description = "Validates request bodies using Pydantic models"

    def __init__(self, repository, **config: Any):
        super().__init__(repository, **config)

    def configure(self, disabled: bool = False):
        """Configure pydantic plugin options.

        The wrapper added by __init_subclass__ handles writing to store.
        """
        pass

    def get_model(self, request: Request) -> Optional[Type[BaseModel]]:
        """Return the body model for this request unless disabled."""
        cfg = self.configuration(request.method.value)
        if cfg.get("disabled"):
            return None
        return request.metadata.body_model

    def wrap_invoke(self, repository, call_next: Callable):
        """Validate the request body before calling the next stage."""

        async def validated(context: ResourceContext) -> None:
            request = context.request
            model = self.get_model(request)
            if model is None:
                return await call_next(context)
            body = request.body
            try:
                if isinstance(body, (bytes, bytearray, str)):
                    instance = model.model_validate_json(body)
                else:
                    instance = model.model_validate(body)
            except ValidationError as exc:
                raise ValidationError.from_exception_data(
                    title=f"Validation error in {request.method.value.upper()} {request.uri}",
                    line_errors=exc.errors(),
                ) from exc
            request.body = instance.model_dump(mode="json")
            await call_next(context)

        return validated


ResourceRepository.register_plugin(PydanticPlugin)
