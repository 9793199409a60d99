"""
Cloudinary image hosting for product pictures
https://cloudinary.com/documentation/image_upload_api_reference

Uses the signed REST upload/destroy endpoints directly. Every call returns
a result dict with a 'success' flag instead of raising, so callers decide
whether a failure is fatal (upload) or best-effort (cleanup).
"""

import hashlib
import time

import requests
from flask import current_app


ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
ALLOWED_MIMETYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


class CloudinaryAPI:
    """Minimal signed client for the Cloudinary image API."""

    BASE_URL = "https://api.cloudinary.com/v1_1"
    TIMEOUT = 30

    def __init__(self, cloud_name=None, api_key=None, api_secret=None, folder=None):
        self.cloud_name = cloud_name or current_app.config.get('CLOUDINARY_CLOUD_NAME')
        self.api_key = api_key or current_app.config.get('CLOUDINARY_API_KEY')
        self.api_secret = api_secret or current_app.config.get('CLOUDINARY_API_SECRET')
        self.folder = folder or current_app.config.get('CLOUDINARY_FOLDER')

    @property
    def configured(self) -> bool:
        return all([self.cloud_name, self.api_key, self.api_secret])

    def _sign(self, params: dict) -> str:
        """SHA-1 of the alphabetically sorted params joined with '&', plus the secret."""
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def _signed_payload(self, params: dict) -> dict:
        params = dict(params, timestamp=int(time.time()))
        params["signature"] = self._sign(params)
        params["api_key"] = self.api_key
        return params

    def upload(self, file_storage):
        """
        Upload a werkzeug FileStorage.

        Returns {'success': True, 'url': ..., 'public_id': ...} or
        {'success': False, 'error': ...}.
        """
        if not self.configured:
            return {'success': False, 'error': 'Cloudinary not configured'}

        params = {"folder": self.folder}
        url = f"{self.BASE_URL}/{self.cloud_name}/image/upload"
        try:
            response = requests.post(
                url,
                data=self._signed_payload(params),
                files={"file": (file_storage.filename, file_storage.stream, file_storage.mimetype)},
                timeout=self.TIMEOUT,
            )
            result = response.json()
        except (requests.RequestException, ValueError) as exc:
            return {'success': False, 'error': str(exc)}

        if response.status_code != 200 or "secure_url" not in result:
            error = result.get("error", {}).get("message") if isinstance(result.get("error"), dict) else None
            return {'success': False, 'error': error or f"HTTP {response.status_code}"}

        return {'success': True, 'url': result["secure_url"], 'public_id': result["public_id"]}

    def destroy(self, public_id: str):
        """Delete an uploaded image. Returns {'success': bool, ...}."""
        if not public_id:
            return {'success': True, 'result': 'skipped'}
        if not self.configured:
            return {'success': False, 'error': 'Cloudinary not configured'}

        url = f"{self.BASE_URL}/{self.cloud_name}/image/destroy"
        try:
            response = requests.post(url, data=self._signed_payload({"public_id": public_id}), timeout=self.TIMEOUT)
            result = response.json()
        except (requests.RequestException, ValueError) as exc:
            return {'success': False, 'error': str(exc)}

        if result.get("result") not in ("ok", "not found"):
            return {'success': False, 'error': result.get("result") or f"HTTP {response.status_code}"}
        return {'success': True, 'result': result["result"]}


def is_allowed_image(file_storage) -> bool:
    filename = (file_storage.filename or "").lower()
    extension = filename.rsplit(".", 1)[-1] if "." in filename else ""
    return extension in ALLOWED_EXTENSIONS and (file_storage.mimetype or "") in ALLOWED_MIMETYPES


def upload_image(file_storage):
    return CloudinaryAPI().upload(file_storage)


def delete_image(public_id: str) -> None:
    """Best-effort removal; failures are logged, never raised."""
    if not public_id:
        return
    result = CloudinaryAPI().destroy(public_id)
    if not result.get('success'):
        current_app.logger.warning("Failed to delete image %s: %s", public_id, result.get('error'))
