"""Transfer entry: the amount resolver and the input router in front of it."""

from timeledger.transfer.resolver import (
    ERROR_DISPLAY,
    TransferNotReadyError,
    TransferResolver,
)
from timeledger.transfer.router import (
    AccountPicked,
    AnchorModeSelected,
    BackspacePressed,
    DigitPressed,
    EqualsPressed,
    FieldTapped,
    InputEvent,
    InputRouter,
    ManualOverrideToggled,
    OperatorPressed,
    RatesRefreshed,
    SwapRequested,
)

__all__ = [
    "ERROR_DISPLAY",
    "TransferNotReadyError",
    "TransferResolver",
    "AccountPicked",
    "AnchorModeSelected",
    "BackspacePressed",
    "DigitPressed",
    "EqualsPressed",
    "FieldTapped",
    "InputEvent",
    "InputRouter",
    "ManualOverrideToggled",
    "OperatorPressed",
    "RatesRefreshed",
    "SwapRequested",
]
