from flask import current_app

from errors import UpstreamError
from services.upstream import call_upstream, require_setting

LOGO_WIDTH = 512
PRODUCT_WIDTH = 1024


def upload(data, filename, folder):
    """Store the bytes on ImageKit and return the stored file path."""
    private_key = require_setting("IMAGEKIT_PRIVATE_KEY", "ImageKit")
    response = call_upstream(
        "POST",
        current_app.config["IMAGEKIT_UPLOAD_URL"],
        "ImageKit",
        auth=(private_key, ""),
        files={"file": (filename, data)},
        data={"fileName": filename, "folder": folder},
    )
    try:
        path = response.json()["filePath"]
    except (ValueError, KeyError, TypeError):
        path = None
    if not path or not isinstance(path, str):
        current_app.logger.error("ImageKit upload returned no file path: %s", response.text)
        raise UpstreamError()
    return path


def optimized_url(path, width):
    endpoint = require_setting("IMAGEKIT_URL_ENDPOINT", "ImageKit").rstrip("/")
    transform = f"tr:q-auto,f-webp,w-{width}"
    return f"{endpoint}/{transform}/{path.lstrip('/')}"


def upload_optimized(file_storage, folder, width):
    path = upload(file_storage.read(), file_storage.filename, folder)
    return optimized_url(path, width)
