"""
File: pushrelay/messages.py

Project: pushrelay

Purpose:
Push message value objects and their JSON request shape.

Design rules:
- All fields optional, set once at construction
- Unset fields are left out of the request body, never sent as null
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

PRIORITY_NORMAL = "normal"
PRIORITY_HIGH = "high"

TOPIC_PREFIX = "/topics/"


def _set_field(target: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        target[key] = value


@dataclass(frozen=True)
class Notification:
    title: Optional[str] = None
    body: Optional[str] = None
    icon: Optional[str] = None
    sound: Optional[str] = None
    badge: Optional[int] = None
    color: Optional[str] = None
    tag: Optional[str] = None
    click_action: Optional[str] = None
    body_loc_key: Optional[str] = None
    body_loc_args: Optional[Tuple[str, ...]] = None
    title_loc_key: Optional[str] = None
    title_loc_args: Optional[Tuple[str, ...]] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.badge is not None:
            payload["badge"] = str(self.badge)
        _set_field(payload, "body", self.body)
        _set_field(payload, "body_loc_args", list(self.body_loc_args) if self.body_loc_args is not None else None)
        _set_field(payload, "body_loc_key", self.body_loc_key)
        _set_field(payload, "click_action", self.click_action)
        _set_field(payload, "color", self.color)
        _set_field(payload, "icon", self.icon)
        _set_field(payload, "sound", self.sound)
        _set_field(payload, "tag", self.tag)
        _set_field(payload, "title", self.title)
        _set_field(payload, "title_loc_args", list(self.title_loc_args) if self.title_loc_args is not None else None)
        _set_field(payload, "title_loc_key", self.title_loc_key)
        return payload


@dataclass(frozen=True)
class Message:
    """
    One push message. The recipient (to / registration_ids) is added by the
    sender, not stored here.
    """

    collapse_key: Optional[str] = None
    delay_while_idle: Optional[bool] = None
    dry_run: Optional[bool] = None
    time_to_live: Optional[int] = None
    priority: Optional[str] = None
    content_available: Optional[bool] = None
    restricted_package_name: Optional[str] = None
    data: Mapping[str, str] = field(default_factory=dict)
    notification: Optional[Notification] = None

    def __post_init__(self) -> None:
        if self.priority not in (None, PRIORITY_NORMAL, PRIORITY_HIGH):
            raise ValueError(f"priority must be '{PRIORITY_NORMAL}' or '{PRIORITY_HIGH}', got {self.priority!r}")
        if self.time_to_live is not None and self.time_to_live < 0:
            raise ValueError("time_to_live cannot be negative")
        object.__setattr__(self, "data", dict(self.data))

    @classmethod
    def from_text(cls, text: str, time_to_live: Optional[int] = None) -> "Message":
        return cls(time_to_live=time_to_live, data={"message": text})

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        _set_field(payload, "priority", self.priority)
        _set_field(payload, "content_available", self.content_available)
        _set_field(payload, "time_to_live", self.time_to_live)
        _set_field(payload, "collapse_key", self.collapse_key)
        _set_field(payload, "restricted_package_name", self.restricted_package_name)
        _set_field(payload, "delay_while_idle", self.delay_while_idle)
        _set_field(payload, "dry_run", self.dry_run)

        if self.data:
            payload["data"] = dict(self.data)

        if self.notification is not None:
            payload["notification"] = self.notification.to_payload()

        return payload


def is_topic(target: str) -> bool:
    return target.startswith(TOPIC_PREFIX)
