"""
Enums for matchday models.
"""

from enum import Enum


class ChallengeType(str, Enum):
    """Ceremony a WebAuthn challenge was issued for."""

    REGISTRATION = "registration"
    AUTHENTICATION = "authentication"


class CredentialDeviceType(str, Enum):
    """Whether a credential is bound to one device or synced across devices."""

    SINGLE_DEVICE = "singleDevice"
    MULTI_DEVICE = "multiDevice"

    @classmethod
    def from_webauthn(cls, value: str) -> "CredentialDeviceType":
        """Map py_webauthn's device type ("single_device"/"multi_device")."""
        if value in ("multi_device", cls.MULTI_DEVICE.value):
            return cls.MULTI_DEVICE
        return cls.SINGLE_DEVICE


class AuthenticatorTransport(str, Enum):
    """Transport hints reported by authenticators."""

    USB = "usb"
    NFC = "nfc"
    BLE = "ble"
    INTERNAL = "internal"
    HYBRID = "hybrid"
    SMART_CARD = "smart-card"
    CABLE = "cable"
