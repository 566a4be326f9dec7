"""Bot credential models."""

from pydantic import BaseModel, ConfigDict, Field

from messengerbot.logging_config import mask_pii


class Credentials(BaseModel):
    """Secrets shared with the Messenger Platform.

    Set once at construction and never mutated. Token values are kept out of
    ``repr`` so they do not leak into tracebacks or log lines.
    """

    model_config = ConfigDict(frozen=True)

    verify_token: str = Field(
        ..., repr=False, description="Token echoed by the platform during webhook setup"
    )
    page_access_token: str = Field(
        ..., repr=False, description="Facebook Page access token for the Send API"
    )

    def masked(self) -> dict[str, str]:
        """Return both tokens masked for logging."""
        return {
            "verify_token": mask_pii(self.verify_token),
            "page_access_token": mask_pii(self.page_access_token),
        }
