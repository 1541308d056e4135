import re

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from sitedir.services.errors import ValidationError

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL_ADAPTER = TypeAdapter(AnyUrl)

FIELD_LABELS = {
    "siteName": "site name",
    "siteUrl": "site URL",
    "category": "category",
    "description": "description",
    "email": "contact email",
}


def is_valid_url(value: str) -> bool:
    """True if value parses as an absolute URL of any scheme."""
    try:
        _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.match(value))


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def require_fields(fields: dict[str, str | None], required: list[str]) -> None:
    """Raise ValidationError for the first required field that is missing or blank."""
    for name in required:
        if _is_blank(fields.get(name)):
            raise ValidationError(
                f"Please fill in the {FIELD_LABELS.get(name, name)}", reason="missing_field"
            )


def require_url(value: str) -> None:
    if not is_valid_url(value.strip()):
        raise ValidationError("Invalid site URL", reason="bad_url")


def require_email(value: str) -> None:
    if not is_valid_email(value.strip()):
        raise ValidationError("Invalid email address", reason="bad_email")
