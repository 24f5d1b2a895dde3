import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from dotenv import load_dotenv

from gas_monitor.config import load_settings
from gas_monitor.dashboard.data import (
    POLLUTANT_LABELS,
    eco_row,
    format_ppm,
    group_by_year,
    history_frame,
    month_label,
    monthly_frame,
    readings_frame,
)
from gas_monitor.eco import GasLevel, gas_level
from gas_monitor.export import export_snapshot
from gas_monitor.models import POLLUTANTS, Tier
from gas_monitor.reconcile import import_snapshot
from gas_monitor.rollover import RolloverManager
from gas_monitor.store import SQLiteStore
from gas_monitor.tiers import ClearOutcome, TierRepository, clear_tier
from gas_monitor.timeutil import utc_now

POLLUTANT_COLORS = {"etanol": "#ff6384", "co2": "#36a2eb", "co": "#ffce56", "nh3": "#4bc0c0"}
LEVEL_COLORS = {
    GasLevel.GOOD: "green",
    GasLevel.MODERATE: "orange",
    GasLevel.POOR: "red",
    GasLevel.UNKNOWN: "gray",
}
CHART_CONFIG = {"scrollZoom": False, "displaylogo": False}


@st.cache_resource(show_spinner=False)
def _repo(store_path: str) -> TierRepository:
    return TierRepository(SQLiteStore(store_path))


def _run_rollover(repo: TierRepository) -> None:
    report = RolloverManager(repo).run()
    for message in report.messages:
        st.success(message)


def _line_chart(x: pd.Series, df: pd.DataFrame, title: str, x_title: str) -> go.Figure:
    fig = go.Figure()
    for p in POLLUTANTS:
        fig.add_trace(
            go.Scatter(
                x=x,
                y=df[p],
                mode="lines+markers",
                name=POLLUTANT_LABELS[p],
                line=dict(color=POLLUTANT_COLORS[p]),
            )
        )
    fig.update_layout(
        title=title,
        xaxis=dict(title=x_title),
        yaxis=dict(title="Value (ppm)"),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
        margin=dict(l=40, r=40, t=60, b=40),
        height=420,
    )
    return fig


def _export_section(repo: TierRepository, tier: Tier) -> None:
    result = export_snapshot(repo, tier, utc_now().date())
    if result.ok:
        st.download_button(
            "Export JSON",
            data=result.content or "",
            file_name=result.filename,
            mime="application/json",
            key=f"export_{tier.value}",
        )
    else:
        st.caption(result.message)


def _import_section(repo: TierRepository, tier: Tier) -> None:
    uploaded = st.file_uploader("Import from file", type=["json"], key=f"upload_{tier.value}")
    if uploaded is not None:
        marker = f"{uploaded.name}:{uploaded.size}"
        # The uploader keeps its value across reruns; import each file once
        if st.session_state.get(f"imported_{tier.value}") != marker:
            st.session_state[f"imported_{tier.value}"] = marker
            result = import_snapshot(repo, tier, uploaded.getvalue().decode("utf-8", errors="replace"))
            (st.success if result.ok else st.error)(result.message)

    text = st.text_area("Or paste JSON data", key=f"paste_{tier.value}")
    if st.button("Import from text", key=f"import_text_{tier.value}"):
        result = import_snapshot(repo, tier, text)
        (st.success if result.ok else st.error)(result.message)


def _clear_section(repo: TierRepository, tier: Tier) -> None:
    confirmed = st.checkbox("I understand this cannot be undone", key=f"confirm_clear_{tier.value}")
    if st.button("Clear all data", key=f"clear_{tier.value}", type="primary"):
        result = clear_tier(repo, tier, confirmed=confirmed)
        if result.outcome == ClearOutcome.CLEARED:
            st.success(result.message)
        else:
            st.warning(result.message)


def live_page(repo: TierRepository) -> None:
    st.header("Live reading")
    readings = repo.load_readings()
    if not readings:
        st.info("No readings yet. Start the collector to receive data from the sensor.")
        return
    latest = readings[-1]
    if latest.location:
        st.caption(f"Location: {latest.location}")
    cols = st.columns(len(POLLUTANTS))
    for col, p in zip(cols, POLLUTANTS):
        value = getattr(latest, p)
        level = gas_level(p, value)
        col.metric(f"{POLLUTANT_LABELS[p]} (ppm)", format_ppm(value))
        col.markdown(f":{LEVEL_COLORS[level]}[{level.value}]")
    st.caption(f"Last update: {readings_frame([latest])['time'].iloc[0].strftime('%Y-%m-%d %H:%M:%S %Z')}")


def today_page(repo: TierRepository) -> None:
    today = utc_now().date()
    st.header(f"Today's data ({today.isoformat()})")
    _run_rollover(repo)

    readings = repo.load_readings()
    if st.button("Save average to history", disabled=not readings):
        result = RolloverManager(repo).save_daily_average()
        (st.success if result.ok else st.error)(result.message)
        readings = repo.load_readings()

    if not readings:
        st.info("No data available for today.")
        return

    df = readings_frame(readings)
    st.plotly_chart(_line_chart(df["time"], df, "Today's readings", "Time (UTC)"), use_container_width=True, config=CHART_CONFIG)
    table = pd.DataFrame(
        {
            "Time": df["time"].dt.strftime("%H:%M:%S"),
            **{POLLUTANT_LABELS[p]: df[p].map(format_ppm) for p in POLLUTANTS},
        }
    )
    st.dataframe(table, hide_index=True, use_container_width=True)


def this_month_page(repo: TierRepository) -> None:
    st.header(f"This month ({month_label(utc_now().strftime('%Y-%m'))})")
    _run_rollover(repo)

    with st.expander("Data management", expanded=False):
        _export_section(repo, Tier.HISTORY)
        _import_section(repo, Tier.HISTORY)
        _clear_section(repo, Tier.HISTORY)

    days = repo.load_history()
    if st.button("Save monthly average", disabled=not days):
        result = RolloverManager(repo).save_monthly_average()
        (st.success if result.ok else st.error)(result.message)
        days = repo.load_history()

    if not days:
        st.info("No daily averages for this month yet.")
        return

    df = history_frame(days)
    st.plotly_chart(
        _line_chart(df["date"], df, "Daily averages", "Date"),
        use_container_width=True,
        config=CHART_CONFIG,
    )
    rows = [{"Date": d.date, **eco_row(d)} for d in sorted(days, key=lambda d: d.date, reverse=True)]
    st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


def monthly_page(repo: TierRepository) -> None:
    st.header("Monthly averages")
    _run_rollover(repo)

    with st.expander("Data management", expanded=False):
        _export_section(repo, Tier.MONTHLY)
        _import_section(repo, Tier.MONTHLY)

    months = repo.load_monthly()
    if not months:
        st.info("No monthly data yet. Months are archived automatically once they are over.")
        return

    df = monthly_frame(months)
    st.plotly_chart(_line_chart(df["label"], df, "Monthly averages", "Month"), use_container_width=True, config=CHART_CONFIG)
    for year, entries in group_by_year(months).items():
        st.subheader(year)
        rows = [{"Month": month_label(m.month), "Days": m.dayCount, **eco_row(m)} for m in entries]
        st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


PAGES = {
    "Live": live_page,
    "Today": today_page,
    "This Month": this_month_page,
    "Monthly": monthly_page,
}


def main() -> None:
    load_dotenv()
    st.set_page_config(page_title="Gas Monitor", layout="wide")
    st.title("Gas Monitor")

    settings = load_settings()
    try:
        repo = _repo(settings.store_path)
    except Exception as exc:  # surface helpful errors (e.g., unwritable store path)
        st.error(str(exc))
        return

    page = st.sidebar.radio("Page", options=list(PAGES), index=1)
    PAGES[page](repo)


if __name__ == "__main__":
    main()
