"""Per-call configuration models."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CallConfigError(Exception):
    """Raised when a call's configuration cannot be loaded or is invalid."""


class TransferMode(str, Enum):
    """Whether and how the caller is handed off to a human."""

    NONE = "None"  # No transfer tool is offered
    COLD = "Cold"  # Brief notice to the caller, then transfer
    WARM = "Warm"  # Summary spoken to the receiving agent before bridging

    def __str__(self) -> str:
        return self.value


class TransferMechanism(str, Enum):
    """How the transfer is executed on the call."""

    DIAL = "Dial"  # Outbound leg to a number/trunk, bridged to the caller
    REFER = "Refer"  # SIP REFER to a target address

    def __str__(self) -> str:
        return self.value


class FirstSpeaker(str, Enum):
    """Who opens the conversation."""

    AGENT = "Agent"
    USER = "User"

    def __str__(self) -> str:
        return self.value


class CallConfig(BaseModel):
    """Immutable configuration snapshot for one call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_key: str = Field(alias="ULTRAVOX_APIKEY")
    prompt: str = Field(default="", alias="ULTRAVOX_PROMPT")
    voice: Optional[str] = Field(default=None, alias="VOICE")
    first_speaker: FirstSpeaker = Field(default=FirstSpeaker.AGENT, alias="FIRST_SPEAKER")
    transfer_mode: TransferMode = Field(default=TransferMode.NONE, alias="CALL_TRANSFER")
    transfer_mechanism: TransferMechanism = Field(
        default=TransferMechanism.DIAL, alias="TRANSFER_TYPE"
    )
    transfer_from: Optional[str] = Field(default=None, alias="TRANSFER_FROM")
    transfer_to: Optional[str] = Field(default=None, alias="TRANSFER_TO")
    transfer_carrier: Optional[str] = Field(default=None, alias="TRANSFER_CARRIER")

    @field_validator(
        "voice", "transfer_from", "transfer_to", "transfer_carrier", mode="before"
    )
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def check_transfer_target(self) -> "CallConfig":
        if self.transfer_mode == TransferMode.NONE:
            return self
        if not self.transfer_to:
            raise ValueError(
                f"TRANSFER_TO is required when CALL_TRANSFER is {self.transfer_mode}"
            )
        if self.transfer_mechanism == TransferMechanism.DIAL and not self.transfer_from:
            raise ValueError("TRANSFER_FROM is required for Dial transfers")
        return self

    @property
    def transfer_enabled(self) -> bool:
        return self.transfer_mode != TransferMode.NONE

    @property
    def needs_confirmation(self) -> bool:
        """Only a warm transfer over a dialed leg speaks to the callee first."""
        return (
            self.transfer_mode == TransferMode.WARM
            and self.transfer_mechanism == TransferMechanism.DIAL
        )
