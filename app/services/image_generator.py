import base64
import io
import logging
from typing import Optional
from openai import OpenAI
from app.core.config import settings

logger = logging.getLogger(__name__)


class ImageGenerationError(Exception):
    pass


def _canvas_size(aspect_ratio: str) -> str:
    width, height = (int(part) for part in aspect_ratio.split(":"))
    if width == height:
        return "1024x1024"
    return "1024x1536" if height > width else "1536x1024"


class OpenAIImageGenerator:
    """Calls the OpenAI Images API and returns PNG bytes."""

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or settings.IMAGE_MODEL

    @property
    def client(self) -> OpenAI:
        # Lazy init: the server starts without a key, only generation needs one
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise ImageGenerationError("OPENAI_API_KEY not configured")
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY)
        return self._client

    def generate(self, prompt: str, aspect_ratio: str, reference_image: Optional[bytes] = None) -> bytes:
        size = _canvas_size(aspect_ratio)
        try:
            if reference_image:
                response = self.client.images.edit(
                    model=self.model,
                    image=("reference.png", io.BytesIO(reference_image), "image/png"),
                    prompt=prompt,
                    size=size,
                )
            else:
                response = self.client.images.generate(model=self.model, prompt=prompt, size=size)
        except Exception as exc:
            raise ImageGenerationError(str(exc)) from exc

        data = response.data[0].b64_json if response.data else None
        if not data:
            raise ImageGenerationError("No image data in response")
        return base64.b64decode(data)


def get_image_generator() -> OpenAIImageGenerator:
    return OpenAIImageGenerator()
