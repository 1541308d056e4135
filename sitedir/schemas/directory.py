from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SiteFields(_CamelModel):
    # Everything is optional here; the coordinator reports missing fields as 400s.
    site_name: str | None = None
    site_url: str | None = None
    category: str | None = None
    description: str | None = None
    keywords: str | None = None
    logo_path: str | None = None

    def as_form(self) -> dict[str, str | None]:
        """Field values keyed by their wire names."""
        return self.model_dump(by_alias=True)


class SubmitRequest(SiteFields):
    email: str | None = None
    contact: str | None = None
    submit_time: str | None = None


class AddSiteRequest(SiteFields):
    pass


class LoginRequest(_CamelModel):
    username: str | None = None
    password: str | None = None


class ReviewRequest(_CamelModel):
    submission_id: str | None = None
    action: str | None = None


class DeleteSiteRequest(_CamelModel):
    site_id: str | None = None


def envelope(message: str = "OK", **data) -> dict:
    """Successful response body: {success, message, ...data}."""
    return {"success": True, "message": message, **data}


def error_envelope(message: str) -> dict:
    return {"success": False, "message": message}
