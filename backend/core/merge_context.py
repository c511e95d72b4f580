# core/merge_context.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urljoin

from core.field_mapping import build_merge_tags, get_row
from models.field_model import FieldDefinition, ListInfo, ListSettings

logger = logging.getLogger(__name__)


@dataclass
class MergeContext:
    data: Dict[str, Any]
    encryption_keys: List[str] = field(default_factory=list)
    recipient_name: str = ""


def resolve_url(base_url: str, relative_url: str) -> str:
    """RFC 3986 reference resolution against the service url"""
    return urljoin(base_url or "", relative_url)


def get_encryption_keys(fields: Iterable[FieldDefinition], subscription: Mapping[str, Any]) -> List[str]:
    """Trimmed, non-empty values of the subscription's gpg fields"""
    keys: List[str] = []
    for entry in get_row(fields, subscription):
        if entry["kind"] != "gpg" or not entry["value"]:
            continue
        key = str(entry["value"]).strip()
        if key and key not in keys:
            keys.append(key)
    return keys


def get_recipient_name(subscription: Mapping[str, Any]) -> str:
    parts = [subscription.get("first_name"), subscription.get("last_name")]
    return " ".join(str(part).strip() for part in parts if part and str(part).strip())


def build_merge_context(
    mailing_list: ListInfo,
    list_settings: ListSettings,
    relative_urls: Mapping[str, str],
    subscription: Mapping[str, Any],
    fields: Iterable[FieldDefinition],
) -> MergeContext:
    fields = list(fields)

    data: Dict[str, Any] = {
        "title": mailing_list.name,
        "homepage": list_settings.default_homepage or list_settings.service_url,
        "contactAddress": list_settings.default_address or "",
        "defaultPostaddress": list_settings.default_postaddress or "",
    }

    for url_key, relative_url in relative_urls.items():
        data[url_key] = resolve_url(list_settings.service_url, relative_url)

    data["tags"] = build_merge_tags(fields, subscription)

    context = MergeContext(
        data=data,
        encryption_keys=get_encryption_keys(fields, subscription),
        recipient_name=get_recipient_name(subscription),
    )
    logger.debug(
        f"Merge context for list {mailing_list.id}: {sorted(relative_urls)} urls, "
        f"{len(context.encryption_keys)} encryption keys"
    )
    return context
