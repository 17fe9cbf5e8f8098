from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI
from pydantic import BaseModel

from relay_bot.config import Settings
from relay_bot.utils.logging import get_logger

log = get_logger(__name__)


class ProviderNotConfigured(RuntimeError):
    def __init__(self, setting: str):
        super().__init__(f"{setting} is not set in the environment variables.")
        self.setting = setting


class ApiEndpoint(BaseModel):
    api_key: str
    base_url: str

    def auth_headers(self, accept: str = "application/json") -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Accept": accept}


class VertexImagen:
    """Imagen via Vertex AI; the SDK is initialised on first use."""

    def __init__(self, project: str, location: str, model_name: str):
        self.project = project
        self.location = location
        self.model_name = model_name
        self._model = None

    def _get_model(self):
        if self._model is None:
            import vertexai
            from vertexai.preview.vision_models import ImageGenerationModel

            vertexai.init(project=self.project, location=self.location)
            self._model = ImageGenerationModel.from_pretrained(self.model_name)
        return self._model

    def generate(self, prompt: str) -> bytes | None:
        response = self._get_model().generate_images(prompt=prompt, number_of_images=1)
        images = list(getattr(response, "images", None) or [])
        if not images:
            return None
        return getattr(images[0], "_image_bytes", None)


@dataclass
class Providers:
    """Every upstream client the bot talks to, built once at startup.

    Optional providers are ``None`` when their key is missing; the ``require_*``
    accessors turn that into :class:`ProviderNotConfigured`.
    """

    chat: AsyncOpenAI
    chat_model: str
    openai: Optional[AsyncOpenAI] = None
    image_model: str = "dall-e-3"
    edit_model: str = "gpt-image-1"
    imagen: Optional[VertexImagen] = None
    stability: Optional[ApiEndpoint] = None
    recraft: Optional[ApiEndpoint] = None
    search: Optional[AsyncOpenAI] = None
    search_model: str = "sonar"

    @classmethod
    def from_settings(cls, settings: Settings) -> "Providers":
        providers = cls(
            chat=AsyncOpenAI(api_key=settings.DEEPSEEK_API_KEY, base_url=settings.DEEPSEEK_API_URL),
            chat_model=settings.DEEPSEEK_MODEL,
            image_model=settings.OPENAI_IMAGE_MODEL,
            edit_model=settings.OPENAI_EDIT_MODEL,
            search_model=settings.PERPLEXITY_MODEL,
        )
        if settings.OPENAI_API_KEY:
            providers.openai = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        if settings.VERTEX_PROJECT_ID:
            providers.imagen = VertexImagen(
                settings.VERTEX_PROJECT_ID, settings.VERTEX_LOCATION, settings.VERTEX_IMAGE_MODEL
            )
        if settings.STABILITY_API_KEY:
            providers.stability = ApiEndpoint(
                api_key=settings.STABILITY_API_KEY, base_url=settings.STABILITY_API_URL
            )
        if settings.RECRAFT_API_KEY:
            providers.recraft = ApiEndpoint(
                api_key=settings.RECRAFT_API_KEY, base_url=settings.RECRAFT_API_URL
            )
        if settings.PERPLEXITY_API_KEY:
            providers.search = AsyncOpenAI(
                api_key=settings.PERPLEXITY_API_KEY, base_url=settings.PERPLEXITY_API_URL
            )
        log.info(
            "providers_configured",
            extra={"extra_fields": {"enabled": providers.enabled()}},
        )
        return providers

    def enabled(self) -> list[str]:
        names = ["chat"]
        for name in ("openai", "imagen", "stability", "recraft", "search"):
            if getattr(self, name) is not None:
                names.append(name)
        return names

    def require_openai(self) -> AsyncOpenAI:
        if self.openai is None:
            raise ProviderNotConfigured("OPENAI_API_KEY")
        return self.openai

    def require_imagen(self) -> VertexImagen:
        if self.imagen is None:
            raise ProviderNotConfigured("VERTEX_PROJECT_ID")
        return self.imagen

    def require_stability(self) -> ApiEndpoint:
        if self.stability is None:
            raise ProviderNotConfigured("STABILITY_API_KEY")
        return self.stability

    def require_recraft(self) -> ApiEndpoint:
        if self.recraft is None:
            raise ProviderNotConfigured("RECRAFT_API_KEY")
        return self.recraft

    def require_search(self) -> AsyncOpenAI:
        if self.search is None:
            raise ProviderNotConfigured("PERPLEXITY_API_KEY")
        return self.search


__all__ = ["ApiEndpoint", "Providers", "ProviderNotConfigured", "VertexImagen"]
