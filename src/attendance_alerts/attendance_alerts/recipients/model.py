from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..core.enums import Channel, PreferredChannel
from ..core.exceptions import RecipientUnusable


@dataclass(frozen=True)
class SubjectInfo:
    """A student as seen from the owner's classes."""

    subject_id: int
    name: str
    roll_number: Optional[str]
    class_id: int
    class_name: str
    section: Optional[str]
    owner_id: int


@dataclass(frozen=True)
class GuardianContact:
    guardian_id: int
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    preferred_channel: PreferredChannel = PreferredChannel.EMAIL


@dataclass(frozen=True)
class AttendanceStats:
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0

    @property
    def total_days(self) -> int:
        return self.present + self.absent + self.late + self.excused

    @property
    def present_days(self) -> int:
        # Late arrivals count as present.
        return self.present + self.late

    @property
    def rate(self) -> float:
        if self.total_days == 0:
            return 0.0
        return self.present_days * 100.0 / self.total_days


@dataclass(frozen=True)
class Recipient:
    """A guardian to notify about one subject. Derived, never stored."""

    subject_id: int
    subject_name: str
    owner_id: int
    guardian_name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    preferred_channel: PreferredChannel
    variables: Mapping[str, object] = field(default_factory=dict)

    def contact_for(self, channel: Channel) -> Optional[str]:
        if not self.preferred_channel.allows(channel):
            return None
        value = self.email if channel == Channel.EMAIL else self.phone
        value = (value or "").strip()
        return value or None

    def channels(self) -> list[Channel]:
        """Channels this recipient can be reached on, in a stable order."""
        return [c for c in (Channel.EMAIL, Channel.SMS) if self.contact_for(c)]

    @classmethod
    def build(
        cls,
        subject: SubjectInfo,
        guardian: GuardianContact,
        variables: Mapping[str, object],
    ) -> "Recipient":
        recipient = cls(
            subject_id=subject.subject_id,
            subject_name=subject.name,
            owner_id=subject.owner_id,
            guardian_name=guardian.name,
            email=guardian.email,
            phone=guardian.phone,
            preferred_channel=guardian.preferred_channel,
            variables=dict(variables),
        )
        if not recipient.channels():
            raise RecipientUnusable(
                f"Guardian {guardian.guardian_id} of subject {subject.subject_id} has no "
                f"{guardian.preferred_channel.value} contact"
            )
        return recipient
