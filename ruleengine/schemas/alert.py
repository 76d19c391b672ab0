from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ruleengine.models.alert import NamedAlert
from ruleengine.models.enums import AlertState


# ── Alert notification payload ──

class AlertPayload(BaseModel):
    labels: Dict[str, str]
    annotations: Dict[str, str] = Field(default_factory=dict)
    starts_at: Optional[datetime] = Field(None, serialization_alias="startsAt")
    ends_at: Optional[datetime] = Field(None, serialization_alias="endsAt")
    generator_url: str = Field("", serialization_alias="generatorURL")
    receivers: List[str] = Field(default_factory=list)
    value: float = 0.0
    state: AlertState = AlertState.FIRING
    missing: bool = False

    @classmethod
    def from_named_alert(cls, named: NamedAlert) -> "AlertPayload":
        alert = named.alert
        ends_at = alert.resolved_at if alert.state == AlertState.RESOLVED else alert.valid_until
        return cls(
            labels=alert.labels.to_dict(),
            annotations=alert.annotations.to_dict(),
            starts_at=alert.fired_at or alert.active_at,
            ends_at=ends_at,
            generator_url=alert.generator_url,
            receivers=list(alert.receivers),
            value=alert.value,
            state=alert.state,
            missing=alert.missing,
        )
