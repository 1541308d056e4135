import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class EntityKind(str, Enum):
    SUBMISSION = "submission"
    SITE = "site"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


SITE_STATUS_ACTIVE = "active"
ADDED_BY_ADMIN = "admin"
ADDED_BY_USER_SUBMISSION = "user_submission"


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_entity_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4()}"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC. None if unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def newest_first_key(value: str | None) -> tuple[bool, datetime]:
    """Sort key for reverse=True ordering; unparseable timestamps end up last."""
    parsed = parse_timestamp(value)
    return (parsed is not None, parsed or _OLDEST)


@dataclass
class Submission:
    id: str
    site_name: str
    site_url: str
    category: str
    description: str
    email: str
    keywords: str = ""
    logo_path: str = ""
    contact: str = ""
    submit_time: str = field(default_factory=utc_now_iso)
    status: SubmissionStatus = SubmissionStatus.PENDING
    reviewed_at: str | None = None
    reviewed_by: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "siteName": self.site_name,
            "siteUrl": self.site_url,
            "category": self.category,
            "description": self.description,
            "keywords": self.keywords,
            "logoPath": self.logo_path,
            "email": self.email,
            "contact": self.contact,
            "submitTime": self.submit_time,
            "status": self.status.value,
            "reviewedAt": self.reviewed_at,
            "reviewedBy": self.reviewed_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Submission":
        return cls(
            id=data["id"],
            site_name=data.get("siteName", ""),
            site_url=data.get("siteUrl", ""),
            category=data.get("category", ""),
            description=data.get("description", ""),
            email=data.get("email", ""),
            keywords=data.get("keywords") or "",
            logo_path=data.get("logoPath") or "",
            contact=data.get("contact") or "",
            submit_time=data.get("submitTime") or "",
            status=SubmissionStatus(data.get("status", SubmissionStatus.PENDING.value)),
            reviewed_at=data.get("reviewedAt"),
            reviewed_by=data.get("reviewedBy"),
        )


@dataclass
class Site:
    id: str
    site_name: str
    site_url: str
    category: str
    description: str
    added_by: str
    keywords: str = ""
    logo_path: str = ""
    added_at: str = field(default_factory=utc_now_iso)
    status: str = SITE_STATUS_ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "siteName": self.site_name,
            "siteUrl": self.site_url,
            "category": self.category,
            "description": self.description,
            "keywords": self.keywords,
            "logoPath": self.logo_path,
            "addedBy": self.added_by,
            "addedAt": self.added_at,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Site":
        return cls(
            id=data["id"],
            site_name=data.get("siteName", ""),
            site_url=data.get("siteUrl", ""),
            category=data.get("category", ""),
            description=data.get("description", ""),
            added_by=data.get("addedBy", ADDED_BY_ADMIN),
            keywords=data.get("keywords") or "",
            logo_path=data.get("logoPath") or "",
            added_at=data.get("addedAt") or "",
            status=data.get("status", SITE_STATUS_ACTIVE),
        )
