"""
Streamlit Frontend for TimeLedger Transfers

The transfer entry screen: two amount cards, a fee row and a keypad.

DESIGN PRINCIPLES:
1. Every button goes through the InputRouter; the screen holds no arithmetic
2. What the user typed is what the user sees (buffers are shown verbatim)
3. Nothing is saved without an explicit "Save" action
4. Clear error messages in simple language

The screen redraws from the resolver's state after every click, so the
derived leg always updates on the same rerun as the keystroke.
"""

import streamlit as st

from timeledger.config import validate_all_settings
from timeledger.models.transfer import (
    Account,
    AccountCategory,
    AnchorMode,
    FocusField,
    LegSide,
)
from timeledger.orchestrator import TransferEntryFlow, TransferSession, create_app_components
from timeledger.services.storage import StorageError
from timeledger.transfer import (
    AccountPicked,
    AnchorModeSelected,
    FieldTapped,
    ManualOverrideToggled,
    SwapRequested,
    TransferNotReadyError,
)


# Page configuration
st.set_page_config(
    page_title="TimeLedger - Transfer",
    page_icon="💱",
    layout="centered",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .amount-card {
        padding: 14px 20px;
        border-radius: 10px;
        border: 2px solid #dee2e6;
        margin: 6px 0;
    }
    .amount-card.focused {
        border-color: #004085;
        background-color: #cce5ff;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


DEMO_ACCOUNTS = [
    Account(id=1, name="Cash", currency="CNY"),
    Account(id=2, name="Bank Card", currency="CNY"),
    Account(id=3, name="US Checking", currency="USD"),
    Account(id=4, name="Japan Wallet", currency="JPY"),
    Account(id=5, name="Credit Card", currency="CNY", category=AccountCategory.CREDIT),
    Account(id=6, name="Loan to Li", currency="CNY", category=AccountCategory.DEBT),
]

KEYPAD_ROWS = [
    ["7", "8", "9", "+"],
    ["4", "5", "6", "-"],
    ["1", "2", "3", "⌫"],
    [".", "0", "="],
]


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def get_session(flow: TransferEntryFlow) -> TransferSession:
    if st.session_state.get("transfer_session") is None:
        st.session_state.transfer_session = flow.open_new(DEMO_ACCOUNTS)
    return st.session_state.transfer_session


def main():
    """Main application entry point."""
    flow, ledger = get_components()

    st.sidebar.title("💱 TimeLedger")
    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ New Transfer", "📊 Saved Transfers", "⚙️ Settings"],
        index=0,
    )

    if page == "➕ New Transfer":
        render_transfer_page(flow)
    elif page == "📊 Saved Transfers":
        render_history_page(flow, ledger)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_transfer_page(flow: TransferEntryFlow):
    """Render the transfer entry form."""
    session = get_session(flow)
    router = session.router
    resolver = session.resolver
    state = resolver.state

    st.title("Transfer" if not session.is_editing else "Edit Transfer")

    transferable = [a for a in DEMO_ACCOUNTS if a.is_transferable]

    col1, col_swap, col2 = st.columns([5, 1, 5])
    with col1:
        render_account_picker(router, LegSide.SOURCE, "From", transferable, state.source.account)
    with col_swap:
        st.write("")
        st.button("⇄", key="swap", on_click=router.dispatch, args=(SwapRequested(),))
    with col2:
        render_account_picker(router, LegSide.TARGET, "To", transferable, state.target.account)

    # Anchor mode
    mode = st.radio(
        "I know the amount that is...",
        options=list(AnchorMode),
        index=list(AnchorMode).index(state.anchor_mode),
        format_func=lambda m: "Sent" if m is AnchorMode.SOURCE_FIXED else "Received",
        horizontal=True,
    )
    if mode != state.anchor_mode:
        router.dispatch(AnchorModeSelected(mode=mode))
        st.rerun()

    if resolver.can_toggle_manual_override():
        st.checkbox(
            "Enter both amounts manually",
            value=state.manual_override,
            key=f"override_{state.manual_override}",
            on_change=router.dispatch,
            args=(ManualOverrideToggled(),),
            help="Use this to match your bank statement exactly.",
        )

    render_amount_card(session, FocusField.SOURCE, "Sent", state.source.currency)
    if not state.manual_override:
        render_amount_card(session, FocusField.FEE, "Fee", state.source.currency)
    render_amount_card(session, FocusField.TARGET, "Received", state.target.currency)

    render_keypad(session)

    st.markdown("---")
    note = st.text_input("Note (optional)", max_chars=1000)

    col_save, col_cancel = st.columns(2)
    with col_save:
        if st.button("💾 Save", type="primary", disabled=not resolver.is_ready_to_save()):
            try:
                record = flow.save(session, note=note)
            except TransferNotReadyError as e:
                st.error("Cannot save yet: " + "; ".join(e.issues))
            except StorageError as e:
                st.error(f"Could not save the transfer: {e}")
            else:
                st.session_state.transfer_session = None
                st.success(
                    f"✅ Saved: {record.source_amount} {record.source_currency} -> "
                    f"{record.target_amount} {record.target_currency}"
                )
    with col_cancel:
        if st.button("✖ Cancel"):
            flow.cancel(session)
            st.session_state.transfer_session = None
            st.rerun()

    if not resolver.is_ready_to_save():
        for issue in resolver.readiness_issues():
            st.caption(f"• {issue}")


def render_account_picker(router, side: LegSide, label: str, accounts: list[Account], selected):
    options = [None] + accounts
    index = options.index(selected) if selected in options else 0
    choice = st.selectbox(
        label,
        options=options,
        index=index,
        format_func=lambda a: "Select account" if a is None else f"{a.name} ({a.currency})",
        key=f"picker_{side.value}_{selected.id if selected else 'none'}",
    )
    if choice is not None and choice != selected:
        router.dispatch(AccountPicked(side=side, account=choice))
        st.rerun()


def render_amount_card(session: TransferSession, field: FocusField, label: str, currency: str):
    resolver = session.resolver
    focused = resolver.get_focused_field() is field
    css = "amount-card focused" if focused else "amount-card"

    col_value, col_tap = st.columns([4, 1])
    with col_value:
        st.markdown(f"""
        <div class="{css}">
            <small>{label} {currency}</small><br/>
            <span class="big-number">{resolver.get_display_value(field)}</span>
        </div>
        """, unsafe_allow_html=True)
    with col_tap:
        st.write("")
        st.button(
            "✎",
            key=f"tap_{field.value}",
            on_click=session.router.dispatch,
            args=(FieldTapped(field=field),),
            disabled=focused,
        )


def render_keypad(session: TransferSession):
    for row_index, row in enumerate(KEYPAD_ROWS):
        cols = st.columns(4)
        for col, label in zip(cols, row):
            with col:
                st.button(
                    label,
                    key=f"key_{row_index}_{label}",
                    on_click=session.router.press,
                    args=(label,),
                )


def render_history_page(flow: TransferEntryFlow, ledger):
    """Render the saved transfers list."""
    st.title("📊 Saved Transfers")

    if ledger is None:
        st.info("Storage is not configured; transfers cannot be listed.")
        return

    records = ledger.list_transfers()
    if not records:
        st.info("No transfers yet. Use 'New Transfer' to add your first one.")
        return

    for record in reversed(records):
        col_text, col_edit = st.columns([5, 1])
        with col_text:
            st.markdown(
                f"**{record.source_amount} {record.source_currency}** -> "
                f"**{record.target_amount} {record.target_currency}**"
                f"  \n{record.timestamp:%Y-%m-%d %H:%M}"
                + (f" · {record.note}" if record.note else "")
            )
        with col_edit:
            if st.button("Edit", key=f"edit_{record.record_id}"):
                st.session_state.transfer_session = flow.open_existing(
                    record.record_id, DEMO_ACCOUNTS
                )
                st.info("Opened for editing. Switch to 'New Transfer'.")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    status = validate_all_settings()

    for name in ("transfer", "rates", "app"):
        if status.get(name, False):
            st.success(f"✅ {name.title()} settings - OK")
        else:
            error = status.get(f"{name}_error", "Invalid")
            st.error(f"❌ {name.title()} settings - {error}")

    st.markdown("---")
    st.markdown(
        "Settings are read from environment variables or a `.env` file "
        "(`TIMELEDGER_TRANSFER_*`, `TIMELEDGER_RATES_*`)."
    )


if __name__ == "__main__":
    main()
