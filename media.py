"""Background images for events: OpenAI generation and uploads as data URLs."""

from flask import current_app
from openai import APIStatusError, AuthenticationError, BadRequestError, OpenAI, OpenAIError, RateLimitError

import storage
from errors import RateLimited, UpstreamServiceError, ValidationError
from utils import encode_data_url

OPENAI_ERROR_KEYS = {
    401: "error.openai_invalid_key",
    429: "error.openai_quota",
    400: "error.openai_bad_request",
}


def openai_client() -> OpenAI:
    return OpenAI(
        api_key=current_app.config["OPENAI_API_KEY"],
        timeout=current_app.config["OPENAI_TIMEOUT_SECONDS"],
    )


def clean_prompt(prompt) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError(key="error.prompt_required")
    prompt = prompt.strip()
    max_len = current_app.config["IMAGE_PROMPT_MAX_LENGTH"]
    if len(prompt) > max_len:
        raise ValidationError(key="error.prompt_too_long", max_len=max_len)
    return prompt


def error_key_for(exc: OpenAIError) -> str:
    if isinstance(exc, AuthenticationError):
        return OPENAI_ERROR_KEYS[401]
    if isinstance(exc, RateLimitError):
        return OPENAI_ERROR_KEYS[429]
    if isinstance(exc, BadRequestError):
        return OPENAI_ERROR_KEYS[400]
    if isinstance(exc, APIStatusError):
        return OPENAI_ERROR_KEYS.get(exc.status_code, "error.openai_failed")
    return "error.openai_failed"


def generate_image(prompt, user_id: int) -> str:
    """Ask OpenAI for one image and return its URL."""
    prompt = clean_prompt(prompt)
    config = current_app.config
    if not config["OPENAI_API_KEY"]:
        current_app.logger.error("OPENAI_API_KEY is not configured")
        raise UpstreamServiceError(key="error.openai_not_configured")

    limit = config["IMAGE_GENERATION_HOURLY_LIMIT"]
    if limit and storage.activity.recent_image_count(user_id) >= limit:
        raise RateLimited(key="error.image_rate_limited", limit=limit)

    current_app.logger.info("Generating image for user=%s prompt_len=%d", user_id, len(prompt))
    try:
        result = openai_client().images.generate(
            model=config["OPENAI_IMAGE_MODEL"],
            prompt=prompt,
            n=1,
            size=config["OPENAI_IMAGE_SIZE"],
            quality=config["OPENAI_IMAGE_QUALITY"],
        )
        image_url = result.data[0].url
    except OpenAIError as exc:
        current_app.logger.exception("OpenAI image generation failed for user=%s", user_id)
        storage.activity.record_image(user_id, prompt, "failed", str(exc))
        raise UpstreamServiceError(key=error_key_for(exc))

    if not image_url:
        storage.activity.record_image(user_id, prompt, "failed", "empty response")
        raise UpstreamServiceError(key="error.openai_failed")

    storage.activity.record_image(user_id, prompt, "success")
    current_app.logger.info("Image generation successful for user=%s", user_id)
    return image_url


def image_to_data_url(upload) -> str:
    if upload is None or not upload.filename:
        raise ValidationError(key="error.image_required")
    mimetype = (upload.mimetype or "").lower()
    if not mimetype.startswith("image/"):
        raise ValidationError(key="error.image_type_invalid")
    max_bytes = current_app.config["UPLOAD_MAX_BYTES"]
    payload = upload.read(max_bytes + 1)
    if len(payload) > max_bytes:
        raise ValidationError(key="error.image_too_large", max_mb=max_bytes // (1024 * 1024))
    if not payload:
        raise ValidationError(key="error.image_required")
    return encode_data_url(payload, mimetype)
