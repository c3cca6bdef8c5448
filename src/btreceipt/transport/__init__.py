"""Transport providers for btreceipt.

Providers are imported lazily so the BLE stack is only loaded when asked for.
"""

from .base import SERIAL_PORT_SERVICE, Channel, DeviceDescriptor, TransportProvider

__all__ = [
    "Channel",
    "DeviceDescriptor",
    "SERIAL_PORT_SERVICE",
    "TransportProvider",
    "get_provider",
]


def get_provider(transport_type: str, **kwargs) -> TransportProvider:
    """Create a transport provider by name.

    Args:
        transport_type: One of 'rfcomm', 'ble'
        **kwargs: Arguments to pass to the provider constructor

    Raises:
        ValueError: If transport_type is unknown
    """
    if transport_type == "rfcomm":
        from .rfcomm import RFCOMMProvider
        return RFCOMMProvider(**kwargs)
    elif transport_type == "ble":
        from .ble import BLEProvider
        return BLEProvider(**kwargs)
    else:
        raise ValueError(f"Unknown transport type: {transport_type}")
