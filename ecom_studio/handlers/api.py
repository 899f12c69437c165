"""Lambda handler for the authenticated first-party API routes."""

import base64
import json
import logging
import random
import re
import time
from io import BytesIO

from PIL import Image, UnidentifiedImageError
from requests_toolbelt.multipart.decoder import (
    ImproperBodyPartContentException,
    MultipartDecoder,
    NonMultipartContentTypeException,
)

from ..clients.storage import BunnyStorageClient, StorageError
from ..clients.supabase import SupabaseClient
from ..clients.webhooks import WebhookClient, WebhookError
from ..config import (
    BUNNY_ACCESS_KEY,
    BUNNY_CDN_URL,
    BUNNY_STORAGE_URL,
    FETCH_WEBHOOK,
    MAX_SELECTED_IMAGES,
    MAX_UPLOAD_BYTES,
    SAVE_WEBHOOK,
    STATUS_WEBHOOK,
    SUPABASE_ANON_KEY,
    SUPABASE_URL,
    USER_FOLDERS,
)
from ..errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    PermissionDeniedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

LIBRARY_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _header(event: dict, name: str) -> str | None:
    for key, value in (event.get("headers") or {}).items():
        if key.lower() == name.lower():
            return value
    return None


def _raw_body(event: dict) -> bytes:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body.encode("utf-8") if isinstance(body, str) else body


def _json_body(event: dict) -> dict:
    try:
        body = json.loads(_raw_body(event) or b"{}")
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    return body


def _disposition_param(disposition: str, param: str) -> str | None:
    match = re.search(rf'(?:^|;)\s*{param}="([^"]*)"', disposition)
    return match.group(1) if match else None


def _parse_multipart(event: dict) -> dict[str, dict]:
    """
    Parse a multipart/form-data body.

    Returns field name -> {"filename", "content_type", "data"}.
    """
    content_type = _header(event, "Content-Type") or ""
    if "multipart/form-data" not in content_type:
        raise ValidationError("Expected multipart/form-data")

    try:
        decoder = MultipartDecoder(_raw_body(event), content_type)
    except (NonMultipartContentTypeException, ImproperBodyPartContentException):
        raise ValidationError("Invalid multipart body")

    fields = {}
    for part in decoder.parts:
        disposition = part.headers.get(b"Content-Disposition", b"").decode("utf-8", "replace")
        name = _disposition_param(disposition, "name")
        if not name:
            continue
        fields[name] = {
            "filename": _disposition_param(disposition, "filename"),
            "content_type": part.headers.get(b"Content-Type", b"text/plain").decode("utf-8", "replace"),
            "data": part.content,
        }
    return fields


def authenticate(event: dict) -> dict:
    """Resolve the Bearer token to the auth user. Raises AuthenticationError."""
    auth_header = _header(event, "Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Unauthorized - No auth token")
    token = auth_header[len("Bearer "):].strip()
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise ConfigurationError("Supabase settings missing")
    try:
        return SupabaseClient(SUPABASE_URL, SUPABASE_ANON_KEY).get_user(token)
    except AuthenticationError:
        raise AuthenticationError("Unauthorized - Invalid token")


def _check_owner(user_id: str | None, user: dict, action: str):
    if user_id != user.get("id"):
        raise PermissionDeniedError(f"Forbidden - Cannot {action} for another user")


def _require(*settings):
    if not all(settings):
        raise ConfigurationError("Server configuration error")


def upload_image(event: dict, user: dict) -> dict:
    fields = _parse_multipart(event)
    file = fields.get("file")
    if not file or not file["data"]:
        raise ValidationError("No file provided")
    user_id = (fields.get("userId") or {}).get("data", b"").decode("utf-8").strip()
    _check_owner(user_id, user, "upload")

    if not file["content_type"].startswith("image/"):
        raise ValidationError("Invalid file type - Only images allowed")
    if len(file["data"]) > MAX_UPLOAD_BYTES:
        raise ValidationError("File too large - Maximum size is 10MB")
    try:
        Image.open(BytesIO(file["data"])).verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        raise ValidationError("Invalid image file")

    extension = (file["filename"] or "image").rsplit(".", 1)[-1]
    filename = f"computer_{int(time.time() * 1000)}_{random.randint(10000, 99999)}.{extension}"

    _require(BUNNY_STORAGE_URL, BUNNY_ACCESS_KEY, BUNNY_CDN_URL)
    storage = BunnyStorageClient(BUNNY_STORAGE_URL, BUNNY_ACCESS_KEY)
    try:
        storage.put_file(f"user-{user_id}/uploads/{filename}", file["data"])
    except StorageError as e:
        logger.error(f"Storage upload failed: {e}")
        raise ApiError("Upload failed", 500)

    return {
        "success": True,
        "url": f"{BUNNY_CDN_URL}/user-{user_id}/uploads/{filename}",
        "filename": filename,
    }


def fetch_product_images(event: dict, user: dict) -> dict:
    product_url = _json_body(event).get("productUrl")
    if not product_url:
        raise ValidationError("productUrl is required")
    if not isinstance(product_url, str) or "http" not in product_url:
        raise ValidationError("Invalid productUrl - Must be a valid URL")

    _require(FETCH_WEBHOOK)
    try:
        result = WebhookClient(FETCH_WEBHOOK).post({"productUrl": product_url})
    except WebhookError as e:
        logger.error(f"Fetch webhook failed: {e}")
        raise ApiError("Could not fetch images from URL", 500)
    return {"success": True, "images": result.get("images") or []}


def generate_video(event: dict, user: dict) -> dict:
    body = _json_body(event)
    _check_owner(body.get("userId"), user, "generate video")

    selected = body.get("selectedImages")
    if not isinstance(selected, list) or not selected:
        raise ValidationError("Invalid selectedImages - Must be a non-empty array")
    if len(selected) > MAX_SELECTED_IMAGES:
        raise ValidationError(f"Maximum {MAX_SELECTED_IMAGES} images allowed")

    _require(SAVE_WEBHOOK)
    payload = {key: body.get(key) for key in ("userId", "refNo", "selectedImages", "imageCount", "settings")}
    try:
        result = WebhookClient(SAVE_WEBHOOK).post(payload)
    except WebhookError as e:
        logger.error(f"Save webhook failed: {e}")
        raise ApiError("Could not start video generation", 500)
    print(f"Generation started: {payload['refNo']} ({len(selected)} images)", flush=True)
    return {
        "success": True,
        "video_url": result.get("video_url") or None,
        "status_url": result.get("status_url") or None,
    }


def check_video_status(event: dict, user: dict) -> dict:
    body = _json_body(event)
    _check_owner(body.get("userId"), user, "check status")
    if not body.get("status_url") or not body.get("refNo"):
        raise ValidationError("status_url and refNo are required")

    _require(STATUS_WEBHOOK)
    payload = {key: body.get(key) for key in ("status_url", "refNo", "userId")}
    try:
        result = WebhookClient(STATUS_WEBHOOK, timeout=30).post(payload)
    except WebhookError as e:
        logger.error(f"Status webhook failed: {e}")
        raise ApiError("Status check failed", 500)
    return {
        "success": True,
        "status": result.get("status"),
        "video_url": result.get("video_url") or None,
    }


def list_library_images(event: dict, user: dict) -> dict:
    user_id = (event.get("queryStringParameters") or {}).get("userId")
    if not user_id:
        raise ValidationError("userId parameter is required")
    _check_owner(user_id, user, "access the library")

    _require(BUNNY_STORAGE_URL, BUNNY_ACCESS_KEY, BUNNY_CDN_URL)
    try:
        entries = BunnyStorageClient(BUNNY_STORAGE_URL, BUNNY_ACCESS_KEY).list_folder(f"user-{user_id}/uploads")
    except StorageError as e:
        logger.error(f"Library listing failed: {e}")
        raise ApiError("Could not load library", 500)

    images = []
    for entry in entries:
        name = entry.get("ObjectName") or ""
        if entry.get("IsDirectory") or not name.lower().endswith(LIBRARY_EXTENSIONS):
            continue
        url = f"{BUNNY_CDN_URL}/user-{user_id}/uploads/{name}"
        images.append({"url": url, "thumbnail": url, "name": name, "date": entry.get("LastChanged")})
    images.sort(key=lambda img: img["date"] or "", reverse=True)
    return {"success": True, "images": images, "count": len(images)}


def create_user_folders(event: dict, user: dict) -> dict:
    user_id = _json_body(event).get("userId")
    if not user_id:
        raise ValidationError("User ID is required")
    _check_owner(user_id, user, "create folders")

    _require(BUNNY_STORAGE_URL, BUNNY_ACCESS_KEY)
    storage = BunnyStorageClient(BUNNY_STORAGE_URL, BUNNY_ACCESS_KEY)
    results = []
    for folder in USER_FOLDERS:
        path = f"user-{user_id}/{folder}"
        try:
            storage.create_folder(path)
            results.append({"folder": path, "success": True})
        except StorageError as e:
            logger.error(f"Folder creation failed: {path}: {e}")
            results.append({"folder": path, "success": False, "error": str(e)})

    all_success = all(r["success"] for r in results)
    return {
        "success": all_success,
        "results": results,
        "folders": [r["folder"] for r in results if r["success"]],
        "message": "All folders created successfully" if all_success else "Some folders could not be created",
    }


ROUTES = {
    ("POST", "/api/upload-image"): upload_image,
    ("POST", "/api/fetch-product-images"): fetch_product_images,
    ("POST", "/api/generate-video"): generate_video,
    ("POST", "/api/check-video-status"): check_video_status,
    ("GET", "/api/list-library-images"): list_library_images,
    ("POST", "/api/create-user-folders"): create_user_folders,
}


def handler(event, context):
    """
    AWS Lambda handler - HTTP API event routed by method and path.

    Every route requires `Authorization: Bearer <token>`.
    Errors: 401 auth, 403 other user's data, 400 bad input, 500 config/upstream.
    """
    method = (event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method") or "").upper()
    path = event.get("path") or event.get("rawPath") or ""

    route = ROUTES.get((method, path))
    if route is None:
        if any(p == path for _, p in ROUTES):
            return _response(405, {"error": "Method not allowed"})
        return _response(404, {"error": "Not found"})

    try:
        user = authenticate(event)
        return _response(200, route(event, user))
    except AuthenticationError as e:
        return _response(401, {"error": str(e)})
    except PermissionDeniedError as e:
        return _response(403, {"error": str(e)})
    except ValidationError as e:
        return _response(400, {"error": str(e)})
    except ConfigurationError as e:
        logger.error(f"{path}: {e}")
        return _response(500, {"error": "Server configuration error"})
    except ApiError as e:
        return _response(e.status_code or 500, {"error": str(e)})
    except Exception as e:
        logger.exception(f"{path}: unhandled error")
        return _response(500, {"error": "Internal server error", "details": str(e)})
