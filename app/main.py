"""
Streamlit Frontend for Enough

One screen: today's balance, a spend button and the daily allowance
setting. All state lives in the BalanceStore; this file only reads the
snapshot and calls spend() / set_daily_allowance().

DESIGN PRINCIPLES:
1. The balance is the first thing on screen
2. Bad input is refused here, before it reaches the store
3. Nothing waits on storage - writes happen in the background

The context is shared by every browser session of the server process
and rotated at midnight by DailyContextProvider; the store serialises
concurrent mutations from different sessions itself.
"""

import atexit

import streamlit as st

from enough.balance import format_amount, parse_amount
from enough.context import AppContext, DailyContextProvider
from enough.models import BalanceSnapshot


QUICK_AMOUNTS = ("5", "10", "20", "50")
SPEND_INPUT_KEY = "spend_amount"


# Page configuration
st.set_page_config(
    page_title="Enough",
    page_icon="🪙",
    layout="centered",
    initial_sidebar_state="collapsed",
)

# Custom CSS for the balance display
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .balance-whole {
        font-size: 4em;
        font-weight: bold;
        color: #2c3e50;
    }
    .balance-fraction {
        font-size: 1.8em;
        color: #7f8c8d;
    }
    .balance-negative {
        color: #c0392b;
    }
    .allowance-badge {
        display: inline-block;
        padding: 4px 12px;
        background-color: #d4edda;
        border-radius: 12px;
        color: #155724;
        margin-top: 8px;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_provider() -> DailyContextProvider:
    """One provider per server process (cached)."""
    provider = DailyContextProvider()
    atexit.register(provider.close)
    return provider


def get_context() -> AppContext:
    """Context loaded for today; a new day builds and loads a new one."""
    return get_provider().get()


def main():
    """Main application entry point."""
    ctx = get_context()
    snapshot = ctx.store.snapshot()
    currency = ctx.settings.balance.currency_symbol

    if snapshot.is_loading:
        st.info("Loading your balance...")
        st.stop()

    if snapshot.storage_unavailable:
        st.error(
            "Your saved balance could not be read. Changes made now will not "
            "be saved; reload the page to try again."
        )

    render_balance(snapshot, currency)
    st.markdown("---")
    render_spend_form(ctx)
    st.markdown("---")
    render_allowance_settings(ctx, snapshot, currency)


def allowance_badge_text(snapshot: BalanceSnapshot, currency: str) -> str:
    """Badge label: the amount is shown only when this load credited it."""
    if snapshot.freshly_credited and snapshot.credited_amount is not None:
        whole, fraction = format_amount(snapshot.credited_amount)
        return f"+{currency}{whole}.{fraction} added today"
    return "Today's allowance already added"


def render_balance(snapshot: BalanceSnapshot, currency: str):
    """Render the balance and today's allowance badge."""
    whole, fraction = format_amount(snapshot.balance)
    css = "balance-whole balance-negative" if snapshot.balance < 0 else "balance-whole"

    st.markdown(f"""
    <div style="text-align: center;">
        <span class="{css}">{currency}{whole}</span><span class="balance-fraction">.{fraction}</span>
    </div>
    """, unsafe_allow_html=True)

    if snapshot.today_allowance_added:
        st.markdown(f"""
        <div style="text-align: center;">
            <span class="allowance-badge">{allowance_badge_text(snapshot, currency)}</span>
        </div>
        """, unsafe_allow_html=True)


def prefill_spend(amount: str):
    """Button callback: put a quick amount into the spend field."""
    st.session_state[SPEND_INPUT_KEY] = amount


def render_spend_form(ctx: AppContext):
    """Render the quick amounts and the spend form."""
    st.subheader("💸 Spend")
    currency = ctx.settings.balance.currency_symbol

    # Quick amounts live outside the form: forms only allow submit buttons
    for column, amount in zip(st.columns(len(QUICK_AMOUNTS)), QUICK_AMOUNTS):
        with column:
            st.button(
                f"{currency}{amount}",
                key=f"quick_{amount}",
                on_click=prefill_spend,
                args=(amount,),
            )

    with st.form("spend_form", clear_on_submit=True):
        spend_text = st.text_input(
            "How much did you spend?",
            placeholder="0.00",
            key=SPEND_INPUT_KEY,
        )
        submitted = st.form_submit_button("Spend", type="primary")

    if submitted:
        amount = parse_amount(spend_text)
        if amount is None:
            st.warning("Please enter an amount greater than zero.")
            return
        ctx.store.spend(amount)
        st.rerun()


def render_allowance_settings(ctx: AppContext, snapshot: BalanceSnapshot, currency: str):
    """Render the daily allowance setting."""
    with st.expander("⚙️ Daily allowance"):
        st.caption(
            f"Currently {currency}{snapshot.daily_allowance} per day. "
            "A new amount applies from the next day on; today's balance is not changed."
        )
        with st.form("allowance_form"):
            allowance_text = st.text_input(
                "New daily allowance",
                value=str(snapshot.daily_allowance),
            )
            saved = st.form_submit_button("Save")

        if saved:
            amount = parse_amount(allowance_text)
            if amount is None:
                st.warning("The daily allowance must be greater than zero.")
                return
            ctx.store.set_daily_allowance(amount)
            st.rerun()


if __name__ == "__main__":
    main()
