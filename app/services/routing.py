"""
Channel routing policy

Priority decides which channels are eligible at all; the user's toggles and
contact points narrow that set. CRITICAL notifications ignore the toggles but
still need a contact point for EMAIL and SMS.
"""

from typing import Any, FrozenSet, Set

from app.models.notification import NotificationChannel, NotificationPriority
from app.models.notification_preference import NotificationPreference
from app.models.user import User

ALL_CHANNELS: FrozenSet[NotificationChannel] = frozenset(NotificationChannel)

PRIORITY_CHANNELS = {
    NotificationPriority.CRITICAL: ALL_CHANNELS,
    NotificationPriority.HIGH: frozenset({NotificationChannel.EMAIL, NotificationChannel.IN_APP}),
    NotificationPriority.MEDIUM: frozenset({NotificationChannel.EMAIL, NotificationChannel.IN_APP}),
    NotificationPriority.NORMAL: frozenset({NotificationChannel.IN_APP}),
    NotificationPriority.LOW: frozenset({NotificationChannel.IN_APP}),
}

# Order in which selected channels are attempted
DELIVERY_ORDER = (
    NotificationChannel.EMAIL,
    NotificationChannel.SMS,
    NotificationChannel.IN_APP,
    NotificationChannel.PUSH,
)

def channels_for(priority: Any) -> FrozenSet[NotificationChannel]:
    """Channels a priority may use; unknown priorities route like NORMAL"""
    return PRIORITY_CHANNELS[NotificationPriority.parse(priority)]

def enabled_channels(preference: NotificationPreference) -> Set[NotificationChannel]:
    toggles = {
        NotificationChannel.EMAIL: preference.email_enabled,
        NotificationChannel.SMS: preference.sms_enabled,
        NotificationChannel.IN_APP: preference.in_app_enabled,
        NotificationChannel.PUSH: preference.push_enabled,
    }
    return {channel for channel, enabled in toggles.items() if enabled}

def reachable_channels(user: User) -> Set[NotificationChannel]:
    """Channels the user has a contact point for"""
    channels = {NotificationChannel.IN_APP, NotificationChannel.PUSH}
    if user.email:
        channels.add(NotificationChannel.EMAIL)
    if user.phone:
        channels.add(NotificationChannel.SMS)
    return channels

def eligible_channels(
    priority: Any,
    preference: NotificationPreference,
    user: User
) -> Set[NotificationChannel]:
    """Final delivery set for one dispatch"""
    channels = set(channels_for(priority)) & reachable_channels(user)

    if NotificationPriority.parse(priority) != NotificationPriority.CRITICAL:
        channels &= enabled_channels(preference)

    return channels

def ordered(channels: Set[NotificationChannel]) -> list:
    return [channel for channel in DELIVERY_ORDER if channel in channels]
