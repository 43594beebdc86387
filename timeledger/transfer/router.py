"""
Input Router

Turns UI events into resolver operations. The screen never touches the
resolver's state directly: every button, card tap and picker result is
described as one of the event models below and dispatched here.
"""

from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from timeledger.models.transfer import Account, AnchorMode, FocusField, LegSide
from timeledger.transfer.resolver import TransferResolver


BACKSPACE_LABELS = frozenset({"⌫", "backspace", "del"})


class InputEvent(BaseModel):
    """Base for every UI event. Events are immutable once created."""
    model_config = ConfigDict(frozen=True)


class DigitPressed(InputEvent):
    digit: str = Field(..., pattern=r"^[0-9.]$")


class OperatorPressed(InputEvent):
    operator: str = Field(..., pattern=r"^[+-]$")


class BackspacePressed(InputEvent):
    pass


class EqualsPressed(InputEvent):
    pass


class FieldTapped(InputEvent):
    """User tapped one of the amount cards (or the fee row)."""
    field: FocusField


class AnchorModeSelected(InputEvent):
    mode: AnchorMode


class AccountPicked(InputEvent):
    """Result of the account picker. `account` is None if it was dismissed."""
    side: LegSide
    account: Optional[Account] = None


class ManualOverrideToggled(InputEvent):
    """Override checkbox. `enabled=None` flips the current setting."""
    enabled: Optional[bool] = None


class SwapRequested(InputEvent):
    pass


class RatesRefreshed(InputEvent):
    pass


class InputRouter:
    """Dispatches UI events to one TransferResolver."""

    def __init__(self, resolver: TransferResolver):
        self._resolver = resolver
        self._handlers: dict[type, Callable[[InputEvent], object]] = {
            DigitPressed: lambda e: resolver.input_digit(e.digit),
            OperatorPressed: lambda e: resolver.input_operator(e.operator),
            BackspacePressed: lambda e: resolver.backspace(),
            EqualsPressed: lambda e: resolver.equals(),
            FieldTapped: lambda e: resolver.set_focus(e.field),
            AnchorModeSelected: lambda e: resolver.select_anchor(e.mode),
            AccountPicked: lambda e: resolver.select_account(e.side, e.account),
            ManualOverrideToggled: self._toggle_override,
            SwapRequested: lambda e: resolver.swap_accounts(),
            RatesRefreshed: lambda e: resolver.on_rates_updated(),
        }

    @property
    def resolver(self) -> TransferResolver:
        return self._resolver

    def _toggle_override(self, event: ManualOverrideToggled) -> bool:
        if event.enabled is None:
            return self._resolver.toggle_manual_override()
        return self._resolver.set_manual_override(event.enabled)

    def dispatch(self, event: InputEvent):
        """
        Route one event.

        Returns whatever the resolver operation returns (account picks
        and override toggles report whether they were accepted).

        Raises:
            TypeError: for an event type the router doesn't know
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported input event: {type(event).__name__}")
        return handler(event)

    @staticmethod
    def key_event(label: str) -> InputEvent:
        """
        Map a keypad button label to its event.

        Raises:
            ValueError: if the label is not a keypad key
        """
        if label in BACKSPACE_LABELS:
            return BackspacePressed()
        if label == "=":
            return EqualsPressed()
        if label in ("+", "-"):
            return OperatorPressed(operator=label)
        if len(label) == 1 and label in "0123456789.":
            return DigitPressed(digit=label)
        raise ValueError(f"Unknown keypad key: {label!r}")

    def press(self, label: str):
        """Shortcut for dispatching a keypad button by its label."""
        return self.dispatch(self.key_event(label))
