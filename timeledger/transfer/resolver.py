"""
Transfer Amount Resolver

Keeps the two legs of a transfer consistent while the user edits them.

    SOURCE_FIXED:  target = max(0, convert(source - fee, src -> tgt))
    TARGET_FIXED:  source = max(0, convert(target, tgt -> src) + fee)

The leg the user is typing into is the anchor; the other leg is derived
and rewritten after every keystroke. Manual override (only available
when the currencies differ) disconnects the derivation so both legs can
be typed independently, e.g. to match a bank statement exactly.

DESIGN DECISION: All state lives in one TransferState and every public
operation ends in _commit(). That one method enforces the mode rules
and refreshes the resolved values, so no caller can leave the state
half-updated.

IMPORTANT: Nothing here raises on user input. Half-typed buffers count
as 0; the only visible failure is the literal "Error" display after "="
on an expression that cannot be evaluated.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from timeledger.audit.log_config import get_logger
from timeledger.calculator import ExpressionError, ExpressionEvaluator, PrecisionPolicy
from timeledger.config import get_settings
from timeledger.models.transfer import (
    Account,
    AnchorMode,
    FocusField,
    LegSide,
    TransferCommit,
    TransferRecord,
    TransferState,
)
from timeledger.services.rates import ConversionPort


ERROR_DISPLAY = "Error"

DIGIT_KEYS = frozenset("0123456789.")
OPERATOR_KEYS = frozenset({"+", "-"})

# Focus transitions: which leg becomes the driver, and whether the next
# keystroke replaces the buffer. The fee never drives.
FOCUS_TRANSITIONS: dict[FocusField, tuple[Optional[AnchorMode], bool]] = {
    FocusField.SOURCE: (AnchorMode.SOURCE_FIXED, True),
    FocusField.TARGET: (AnchorMode.TARGET_FIXED, True),
    FocusField.FEE: (None, True),
}

ANCHOR_FOCUS: dict[AnchorMode, FocusField] = {
    AnchorMode.SOURCE_FIXED: FocusField.SOURCE,
    AnchorMode.TARGET_FIXED: FocusField.TARGET,
}


class TransferNotReadyError(Exception):
    """The transfer cannot be saved in its current state."""

    def __init__(self, issues: list[str]):
        self.issues = issues
        super().__init__("Transfer not ready: " + "; ".join(issues))


class TransferResolver:
    """
    The transfer form's state machine.

    Owns one TransferState. UI events reach it through InputRouter;
    the UI reads back display strings and readiness.
    """

    def __init__(
        self,
        conversion: ConversionPort,
        state: Optional[TransferState] = None,
        precision: Optional[PrecisionPolicy] = None,
        evaluator: Optional[ExpressionEvaluator] = None,
        allow_cross_currency: Optional[bool] = None,
    ):
        """
        Initialize resolver.

        Args:
            conversion: Exchange-rate port used when the currencies differ
            state: Existing state to continue editing; a fresh form if None
            precision: Currency precision rules
            evaluator: Keypad expression evaluator
            allow_cross_currency: Whether legs may differ in currency.
                Read from settings if None.
        """
        self._conversion = conversion
        self._precision = precision or PrecisionPolicy()
        self._evaluator = evaluator or ExpressionEvaluator()
        if allow_cross_currency is None:
            allow_cross_currency = get_settings().transfer.allow_cross_currency
        self._allow_cross_currency = allow_cross_currency
        self._state = state if state is not None else TransferState()
        self._logger = get_logger(__name__)
        self._commit()

    @classmethod
    def from_record(
        cls,
        record: TransferRecord,
        accounts: Union[Mapping[int, Account], Iterable[Account]],
        conversion: ConversionPort,
        **kwargs,
    ) -> "TransferResolver":
        """
        Reopen a stored transfer for editing.

        Accounts that no longer exist come back unselected. Records that
        predate fee storage get their fee inferred: for same-currency
        transfers it is the difference between the legs, otherwise 0.
        Cross-currency records open in manual override so the stored
        amounts are shown exactly as saved, whatever today's rate is.
        """
        if isinstance(accounts, Mapping):
            by_id = dict(accounts)
        else:
            by_id = {account.id: account for account in accounts}

        precision = kwargs.get("precision") or PrecisionPolicy()

        state = TransferState()
        state.source.account = by_id.get(record.source_account_id)
        state.target.account = by_id.get(record.target_account_id)

        source_currency = state.source.currency or record.source_currency
        target_currency = state.target.currency or record.target_currency
        state.source.buffer = precision.format(record.source_amount, source_currency)
        state.target.buffer = precision.format(record.target_amount, target_currency)

        if record.fee is not None:
            fee = record.fee
        elif source_currency == target_currency:
            fee = max(Decimal("0"), record.source_amount - record.target_amount)
        else:
            fee = Decimal("0")
        state.fee_buffer = precision.format(fee, source_currency)

        state.manual_override = state.currencies_differ

        resolver = cls(conversion, state=state, **kwargs)
        resolver.recompute()
        return resolver

    # =========================================================================
    # UI QUERIES
    # =========================================================================

    @property
    def state(self) -> TransferState:
        return self._state

    def get_display_value(self, field: FocusField) -> str:
        return self._state.buffer_for(field)

    def get_focused_field(self) -> FocusField:
        return self._state.focused_field

    def can_toggle_manual_override(self) -> bool:
        """Manual override only makes sense between two different currencies."""
        return self._state.currencies_differ

    def readiness_issues(self) -> list[str]:
        """Everything currently blocking a save (empty when ready)."""
        state = self._state
        issues = []
        if state.source.account is None:
            issues.append("Source account not selected")
        if state.target.account is None:
            issues.append("Target account not selected")
        if (
            state.both_selected
            and state.source.account.id == state.target.account.id
        ):
            issues.append("Source and target accounts are the same")
        if state.source.value <= 0:
            issues.append("Outgoing amount must be greater than zero")
        if state.target.value <= 0:
            issues.append("Incoming amount must be greater than zero")
        return issues

    def is_ready_to_save(self) -> bool:
        return not self.readiness_issues()

    def build_commit(
        self,
        timestamp: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> TransferCommit:
        """
        Produce the finished pair of values for the ledger.

        Raises:
            TransferNotReadyError: if the save-time guard fails
        """
        issues = self.readiness_issues()
        if issues:
            raise TransferNotReadyError(issues)

        state = self._state
        source_currency = state.source.currency
        target_currency = state.target.currency
        # Under manual override the fee is folded into the typed amounts
        fee = Decimal("0") if state.manual_override else state.fee

        return TransferCommit(
            source_account_id=state.source.account.id,
            target_account_id=state.target.account.id,
            source_currency=source_currency,
            target_currency=target_currency,
            source_amount=self._precision.quantize(state.source.value, source_currency),
            target_amount=self._precision.quantize(state.target.value, target_currency),
            fee=self._precision.quantize(fee, source_currency),
            timestamp=timestamp or datetime.utcnow(),
            note=note.strip() if note and note.strip() else None,
        )

    # =========================================================================
    # FOCUS & MODES
    # =========================================================================

    def set_focus(self, field: FocusField) -> None:
        """
        Move keypad focus to a field.

        Focusing a leg makes it the driver. The next keystroke after any
        focus change replaces the buffer instead of appending to it.
        """
        state = self._state
        if field is FocusField.FEE and state.manual_override:
            self._logger.debug("fee_focus_refused", reason="manual_override")
            return

        anchor, overwrite = FOCUS_TRANSITIONS[field]
        state.focused_field = field
        state.overwrite_on_next_input = overwrite

        anchor_changed = anchor is not None and anchor != state.anchor_mode
        if anchor_changed:
            state.anchor_mode = anchor
        self._commit(recompute=anchor_changed)

    def select_anchor(self, mode: AnchorMode) -> None:
        """Pick which leg is fixed, from the mode buttons."""
        state = self._state
        state.anchor_mode = mode
        state.focused_field = ANCHOR_FOCUS[mode]
        state.overwrite_on_next_input = True
        self._commit(recompute=True)

    def toggle_manual_override(self) -> bool:
        """
        Flip manual override.

        Returns:
            False (and changes nothing) when override is not allowed
        """
        state = self._state
        if not self.can_toggle_manual_override():
            self._logger.debug(
                "manual_override_refused",
                source_currency=state.source.currency,
                target_currency=state.target.currency,
            )
            return False

        state.manual_override = not state.manual_override
        self._logger.info("manual_override_changed", enabled=state.manual_override)
        # Turning it off re-derives from the current anchor immediately
        self._commit(recompute=not state.manual_override)
        return True

    def set_manual_override(self, enabled: bool) -> bool:
        if self._state.manual_override == enabled:
            return True
        return self.toggle_manual_override()

    # =========================================================================
    # KEYPAD
    # =========================================================================

    def input_digit(self, digit: str) -> None:
        """Type a digit or the decimal point into the focused field."""
        if digit not in DIGIT_KEYS:
            raise ValueError(f"Not a digit key: {digit!r}")

        state = self._state
        fresh = "0." if digit == "." else digit

        if state.overwrite_on_next_input or self._focused_buffer() == ERROR_DISPLAY:
            state.overwrite_on_next_input = False
            self._edit(lambda current: fresh)
        else:
            self._edit(lambda current: fresh if current == "0" else current + digit)

    def input_operator(self, operator: str) -> None:
        """Append " + " or " - " to the focused field."""
        if operator not in OPERATOR_KEYS:
            raise ValueError(f"Not an operator key: {operator!r}")
        if self._focused_buffer() == ERROR_DISPLAY:
            return

        self._state.overwrite_on_next_input = False
        self._edit(lambda current: f"{current} {operator} ")

    def backspace(self) -> None:
        state = self._state
        if state.overwrite_on_next_input or self._focused_buffer() == ERROR_DISPLAY:
            state.overwrite_on_next_input = False
            self._edit(lambda current: "0")
        else:
            self._edit(lambda current: current[:-1] if len(current) > 1 else "0")

    def equals(self) -> None:
        """Collapse the focused buffer's expression into its formatted value."""
        state = self._state
        field = state.focused_field
        if field is FocusField.FEE and state.manual_override:
            return

        current = state.buffer_for(field)
        try:
            value = self._evaluator.evaluate(current)
            result = self._precision.format(value, state.currency_for(field))
        except ExpressionError as e:
            self._logger.info("expression_error", field=field.value, error=str(e))
            result = ERROR_DISPLAY

        state.set_buffer(field, result)
        self._commit(recompute=True)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def select_account(self, side: LegSide, account: Optional[Account]) -> bool:
        """
        Pick the account for one leg.

        The other leg is cleared (forcing a re-pick) if it holds the same
        account, or a different currency while cross-currency transfers
        are disabled. All buffers are then reformatted for their
        currencies.

        Returns:
            False if the account cannot take part in a transfer, or the
            picker was dismissed without a choice
        """
        if account is None:
            return False
        if not account.is_transferable:
            self._logger.info(
                "account_refused",
                account_id=account.id,
                category=account.category.value,
            )
            return False

        state = self._state
        leg = state.leg(side)
        other = state.leg(side.other)
        leg.account = account

        if other.account is not None:
            same_account = other.account.id == account.id
            currency_conflict = (
                not self._allow_cross_currency
                and other.account.currency != account.currency
            )
            if same_account or currency_conflict:
                self._logger.info(
                    "account_selection_cleared",
                    side=side.other.value,
                    account_id=other.account.id,
                    reason="same_account" if same_account else "currency_mismatch",
                )
                other.account = None
                other.buffer = "0"

        self._reformat_buffers()
        self._commit(recompute=True)
        return True

    def swap_accounts(self) -> None:
        """Exchange the two legs' accounts and amounts; the anchor stays put."""
        state = self._state
        source, target = state.source, state.target

        source.account, target.account = target.account, source.account
        source.buffer, target.buffer = target.buffer, source.buffer

        if state.both_selected and source.account.id == target.account.id:
            self._logger.info(
                "account_selection_cleared",
                side=LegSide.TARGET.value,
                account_id=target.account.id,
                reason="same_account",
            )
            target.account = None
            target.buffer = "0"

        self._commit(recompute=True)

    # =========================================================================
    # DERIVATION
    # =========================================================================

    def on_rates_updated(self) -> None:
        """The conversion port has new rates; re-derive."""
        self._commit(recompute=True)

    def recompute(self) -> None:
        """Re-derive the non-anchor leg from the anchor leg and the fee."""
        self._commit(recompute=True)

    def _derive(self) -> None:
        state = self._state
        if state.manual_override and not state.same_currency:
            return
        if not state.both_selected:
            return

        source, target = state.source, state.target
        fee = self._fee_value()

        if state.anchor_mode is AnchorMode.SOURCE_FIXED:
            derived = target
            base = self._evaluator.evaluate_or_zero(source.buffer) - fee
            value = self._convert(base, source.currency, target.currency)
        else:
            derived = source
            base = self._evaluator.evaluate_or_zero(target.buffer)
            value = self._convert(base, target.currency, source.currency) + fee

        value = max(Decimal("0"), value)
        derived.buffer = self._precision.format(value, derived.currency)

    def _convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        if from_currency == to_currency:
            return amount
        return self._conversion.convert(amount, from_currency, to_currency)

    def _fee_value(self) -> Decimal:
        return max(Decimal("0"), self._evaluator.evaluate_or_zero(self._state.fee_buffer))

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _focused_buffer(self) -> str:
        return self._state.buffer_for(self._state.focused_field)

    def _edit(self, transform) -> None:
        """
        Apply a keystroke to the focused buffer.

        The new text is kept if it is an expression, shorter than before,
        or valid for the field's currency; otherwise the keystroke is
        dropped.
        """
        state = self._state
        field = state.focused_field
        if field is FocusField.FEE and state.manual_override:
            return

        current = state.buffer_for(field)
        candidate = transform(current)

        is_expression = "+" in candidate or "-" in candidate
        if (
            is_expression
            or len(candidate) < len(current)
            or self._precision.validate(candidate, state.currency_for(field))
        ):
            state.set_buffer(field, candidate)
            self._commit(recompute=True)
        else:
            self._logger.debug(
                "keystroke_rejected",
                field=field.value,
                candidate=candidate,
                currency=state.currency_for(field),
            )
            self._commit()

    def _reformat_buffers(self) -> None:
        state = self._state
        for leg in (state.source, state.target):
            if leg.account is not None:
                value = self._evaluator.evaluate_or_zero(leg.buffer)
                leg.buffer = self._precision.format(value, leg.currency)
        if state.source.account is not None:
            fee = self._evaluator.evaluate_or_zero(state.fee_buffer)
            state.fee_buffer = self._precision.format(fee, state.source.currency)

    def _commit(self, recompute: bool = False) -> None:
        """
        Single exit point of every state change.

        1. Manual override needs two selected accounts in different currencies
        2. The fee cannot hold focus while it is disabled
        3. Re-derive the non-anchor leg (when asked)
        4. Refresh the resolved numeric values
        """
        state = self._state

        if state.manual_override and not state.currencies_differ:
            state.manual_override = False
            self._logger.info(
                "manual_override_changed",
                enabled=False,
                reason="same_currency" if state.same_currency else "account_cleared",
            )

        if state.manual_override and state.focused_field is FocusField.FEE:
            state.focused_field = FocusField.SOURCE

        if recompute:
            self._derive()

        state.source.value = self._evaluator.evaluate_or_zero(state.source.buffer)
        state.target.value = self._evaluator.evaluate_or_zero(state.target.buffer)
        state.fee = self._fee_value()
