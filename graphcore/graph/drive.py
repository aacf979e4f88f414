"""OneDrive / SharePoint drive operations via Microsoft Graph."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

from graphcore.cli_errors import NotFoundError, UsageError

from .client import GraphClient
from .models import DriveListOptions, DriveRef
from .pagination import ListRequest, ListResponse, build_url, normalize_payload, parse_page_token

LOG = logging.getLogger(__name__)

DOWNLOAD_URL_KEY = "@microsoft.graph.downloadUrl"
ITEM_ID_PREFIX = "id:"


def drive_base(ref: Optional[DriveRef] = None) -> str:
    """Resolve the drive root path: drive id, then user, then site, then /me."""
    ref = ref or DriveRef()
    if ref.drive_id:
        return f"/drives/{quote(ref.drive_id, safe='')}"
    if ref.user_id:
        return f"/users/{quote(ref.user_id, safe='')}/drive"
    if ref.site_id:
        return f"/sites/{quote(ref.site_id, safe='')}/drive"
    return "/me/drive"


def encode_item_path(path: str) -> str:
    """Percent-encode each segment of a drive path, dropping empty segments."""
    parts = [p for p in path.replace("\\", "/").split("/") if p]
    return "/".join(quote(p, safe="") for p in parts)


def is_folder(item: Dict[str, Any]) -> bool:
    return "folder" in item


class DriveOperations:
    """Drive metadata, listings and downloads."""

    def __init__(self, client: GraphClient):
        self.client = client

    def get_drive(self, ref: Optional[DriveRef] = None) -> Dict[str, Any]:
        return self.client.get(drive_base(ref))

    def item_path(self, path_or_id: str, ref: Optional[DriveRef] = None) -> str:
        """Path for an item addressed by drive path, or by id as ``id:<item-id>``."""
        base = drive_base(ref)
        if path_or_id.startswith(ITEM_ID_PREFIX):
            return f"{base}/items/{quote(path_or_id[len(ITEM_ID_PREFIX):], safe='')}"
        encoded = encode_item_path(path_or_id)
        if not encoded:
            return f"{base}/root"
        return f"{base}/root:/{encoded}:"

    def children_path(self, options: DriveListOptions) -> str:
        base = drive_base(options.drive)
        if options.shared:
            return f"{base}/sharedWithMe"
        encoded = encode_item_path(options.path or "")
        if not encoded:
            return f"{base}/root/children"
        return f"{base}/root:/{encoded}:/children"

    def list_items(self, options: Optional[DriveListOptions] = None) -> ListResponse[Dict[str, Any]]:
        options = options or DriveListOptions()
        request = ListRequest(
            resource_path=self.children_path(options),
            limit=options.top,
            continuation=parse_page_token(options.page_token),
            order_by=options.order_by,
        )
        return normalize_payload(self.client.get(build_url(request)))

    def get_item(self, path_or_id: str, ref: Optional[DriveRef] = None) -> Dict[str, Any]:
        return self.client.get(self.item_path(path_or_id, ref))

    def download(
        self,
        path_or_id: str,
        dest: Optional[Union[str, Path]] = None,
        ref: Optional[DriveRef] = None,
    ) -> Path:
        """Download a file to ``dest`` (a file or directory; default: its name in cwd)."""
        if not path_or_id:
            raise UsageError("item path or ID is required")
        item = self.get_item(path_or_id, ref)
        if is_folder(item):
            raise UsageError(f"'{item.get('name') or path_or_id}' is a folder")
        url = item.get(DOWNLOAD_URL_KEY)
        if not url:
            raise NotFoundError(f"no download URL for '{item.get('name') or path_or_id}'")
        name = item.get("name") or os.path.basename(path_or_id.rstrip("/")) or "download"
        target = Path(dest) if dest else Path(name)
        if target.is_dir():
            target = target / name
        written = self.client.download(url, target)
        LOG.debug("downloaded %s bytes to %s", written, target)
        return target
