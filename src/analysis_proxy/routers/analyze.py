"""
Image analysis forwarding endpoint.

Single linear flow per request:
1. Rate limit check (before the handler body runs)
2. Validate the upload (one file, within the size ceiling)
3. Forward it to the upstream with the bearer credential
4. Relay the upstream body verbatim, or map the failure to an error response

The router is built by a factory so each application gets its own limiter.
The multipart body is parsed in the handler rather than through FastAPI
parameters, so every malformed upload gets the service's own error body.
"""

# Annotations stay runtime-evaluated: slowapi wraps the endpoint before
# FastAPI resolves its parameters.

from fastapi import APIRouter, Request
from fastapi.responses import Response
from slowapi import Limiter
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from analysis_proxy.clients.upstream import DEFAULT_CONTENT_TYPE, DEFAULT_FILENAME, ImageUpload
from analysis_proxy.core.exceptions import ServiceError
from analysis_proxy.core.state import get_app_state
from analysis_proxy.logging import get_logger
from analysis_proxy.schemas import ErrorResponse

IMAGE_FIELD = "image"
CONTEXT_FIELD = "context_json"

ANALYZE_REQUEST_BODY = {
    "required": True,
    "content": {
        "multipart/form-data": {
            "schema": {
                "type": "object",
                "required": [IMAGE_FIELD],
                "properties": {
                    IMAGE_FIELD: {
                        "type": "string",
                        "format": "binary",
                        "description": "Image to analyze",
                    },
                    CONTEXT_FIELD: {
                        "type": "string",
                        "description": "Opaque JSON text forwarded unchanged",
                    },
                },
            }
        }
    },
}


def missing_image_error() -> ServiceError:
    return ServiceError(
        error="missing_image",
        message="No image file provided",
        status_code=400,
    )


def payload_too_large_error(max_bytes: int) -> ServiceError:
    return ServiceError(
        error="payload_too_large",
        message=f"Image exceeds the upload limit of {max_bytes} bytes",
        status_code=413,
        details={"max_bytes": max_bytes},
    )


def check_declared_length(request: Request, max_bytes: int) -> None:
    """Reject a body whose Content-Length already exceeds what can be forwarded."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise payload_too_large_error(max_bytes)


def select_image(form: FormData) -> UploadFile:
    """
    Return the single uploaded image file.

    Text values under the image field are not files and are ignored.

    Raises:
        ServiceError: 400 if no file or more than one file was sent
    """
    files = [value for value in form.getlist(IMAGE_FIELD) if isinstance(value, UploadFile)]
    if not files:
        raise missing_image_error()
    if len(files) > 1:
        raise ServiceError(
            error="too_many_images",
            message="Only one image file may be uploaded",
            status_code=400,
            details={"received": len(files)},
        )
    return files[0]


def select_context(form: FormData) -> str | None:
    """Return the context text, treating an empty or non-text value as absent."""
    value = form.get(CONTEXT_FIELD)
    if isinstance(value, str) and value:
        return value
    return None


async def read_upload(image: UploadFile, max_bytes: int) -> ImageUpload:
    """
    Read an uploaded file, enforcing the upload size ceiling.

    Raises:
        ServiceError: 400 if the part is an empty placeholder, 413 if too large
    """
    content = await image.read(max_bytes + 1)

    # Browsers send an empty, unnamed file part when no file was chosen
    if not content and not image.filename:
        raise missing_image_error()

    if len(content) > max_bytes:
        raise payload_too_large_error(max_bytes)

    return ImageUpload(
        filename=image.filename or DEFAULT_FILENAME,
        content=content,
        content_type=image.content_type or DEFAULT_CONTENT_TYPE,
    )


def create_router(limiter: Limiter, rate_limit: str) -> APIRouter:
    """
    Build the /analyze router bound to a specific limiter.

    Args:
        limiter: Limiter owned by the application being built
        rate_limit: Limit string, e.g. "50/15 minutes"

    Returns:
        Router exposing POST /analyze
    """
    router = APIRouter()

    @router.post(
        "/analyze",
        openapi_extra={"requestBody": ANALYZE_REQUEST_BODY},
        responses={
            400: {"model": ErrorResponse, "description": "Missing, extra or malformed upload"},
            413: {"model": ErrorResponse, "description": "Image exceeds the upload limit"},
            429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
            500: {"model": ErrorResponse, "description": "Upstream unreachable"},
            504: {"model": ErrorResponse, "description": "Upstream timed out"},
        },
    )
    @limiter.limit(rate_limit)
    async def analyze_image(request: Request) -> Response:
        """
        Forward an uploaded image to the analysis service.

        On success the upstream JSON body is returned byte-for-byte with
        status 200. Upstream error statuses are mirrored.
        """
        logger = get_logger()
        state = get_app_state(request)
        settings = state.settings

        check_declared_length(request, settings.upstream.max_request_bytes)

        try:
            async with request.form() as form:
                image = select_image(form)
                upload = await read_upload(image, settings.uploads.max_file_bytes)
                context_json = select_context(form)
        except StarletteHTTPException as exc:
            raise ServiceError(
                error="invalid_upload",
                message="Request body is not a valid multipart upload",
                status_code=400,
                details={"reason": str(exc.detail)},
            ) from exc

        client = state.upstream_client

        logger.info(
            "Forwarding image for analysis",
            extra={
                "image_filename": upload.filename,
                "size_bytes": upload.size,
                "content_type": upload.content_type,
                "has_context": context_json is not None,
                "target": client.analyze_url,
            },
        )

        result = await client.analyze(upload, context_json)

        logger.info(
            "Analysis completed",
            extra={
                "image_filename": upload.filename,
                "upstream_status": result.status_code,
                "response_bytes": len(result.content),
            },
        )

        return Response(
            content=result.content,
            status_code=200,
            media_type=result.content_type,
        )

    return router
