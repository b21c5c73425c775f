"""
Cell Chain Simulator: Streamlit Web UI

Single page with:
  1. Sidebar settings (grid size, counts, rules, delay)
  2. Initialize / Step / Start / Stop / Restart controls
  3. Live grid view and population chart
"""

import time

import streamlit as st

from cellchain.core.config import SimConfig, get_default_config
from cellchain.core.grid import CapacityExceededError
from cellchain.simulation.engine import SimulationEngine, create_simulation, restart_simulation
from cellchain.simulation.metrics import MetricsCollector
from cellchain.ui.components.grid_view import population_frame, render_grid

# Must be the very first Streamlit command
st.set_page_config(
    page_title="Cell Chain Simulator",
    page_icon="🔢",
    layout="wide",
    initial_sidebar_state="expanded",
)


# ---------------------------------------------------------------------------
# Session state helpers
# ---------------------------------------------------------------------------

def _init_session_state() -> None:
    defaults = {
        "engine": None,
        "metrics": None,
        "config": get_default_config(),
        "running": False,
        "status": None,  # (kind, message)
    }
    for k, v in defaults.items():
        if k not in st.session_state:
            st.session_state[k] = v


def _show_status(kind: str, message: str) -> None:
    st.session_state.status = (kind, message)


# ---------------------------------------------------------------------------
# Sidebar settings
# ---------------------------------------------------------------------------

def _render_settings() -> SimConfig:
    """Collect settings from the sidebar into a fresh SimConfig."""
    config = st.session_state.config.copy()
    sb = st.sidebar

    sb.title("🔢 Cell Chain")
    sb.markdown("---")
    sb.subheader("Grid")
    config.grid.width = sb.number_input("Width", 1, 100, config.grid.width)
    config.grid.height = sb.number_input("Height", 1, 100, config.grid.height)
    config.grid.food_count = sb.number_input("Food", 0, 10_000, config.grid.food_count)
    config.grid.cell_count = sb.number_input("Cells", 0, 10_000, config.grid.cell_count)
    config.grid.max_value = sb.number_input("Max value", 1, 99, config.grid.max_value)

    sb.subheader("Rules")
    config.rules.cells_die = sb.checkbox("Cells die of starvation", config.rules.cells_die)
    config.rules.initial_energy = sb.number_input("Energy", 1, 100, config.rules.initial_energy)
    config.rules.allow_random_move = sb.checkbox("Random move", config.rules.allow_random_move)
    config.rules.cannibal_mode = sb.checkbox("Cannibal mode", config.rules.cannibal_mode)

    sb.subheader("Run")
    config.run.delay_ms = sb.number_input("Delay (ms)", 10, 5_000, config.run.delay_ms, step=10)
    return config


# ---------------------------------------------------------------------------
# Controls
# ---------------------------------------------------------------------------

def _initialize(config: SimConfig) -> None:
    errors = config.validate()
    if errors:
        _show_status("error", errors[0])
        return
    try:
        engine = create_simulation(config)
    except CapacityExceededError as e:
        _show_status("error", str(e))
        return

    old = st.session_state.engine
    if old is not None:
        old.stop()

    metrics = MetricsCollector()
    engine.on_update = lambda: metrics.collect(engine.grid, engine.tick_count, engine.last_tick_stats)
    metrics.collect(engine.grid, 0)

    st.session_state.engine = engine
    st.session_state.metrics = metrics
    st.session_state.config = config
    st.session_state.running = False
    _show_status("success", "Grid initialized successfully")


def _step(engine: SimulationEngine) -> None:
    if not engine.tick():
        _show_status("info", "No more moves available")


def _restart(engine: SimulationEngine) -> None:
    """Re-scatter the same counts on the current grid and zero the tick counter."""
    grid = restart_simulation(engine, st.session_state.config)
    st.session_state.metrics.clear()
    st.session_state.metrics.collect(grid, 0)
    st.session_state.running = False
    _show_status("success", "Grid restarted")


# ---------------------------------------------------------------------------
# Main render
# ---------------------------------------------------------------------------

def main() -> None:
    """Main entry point for the Streamlit app."""
    _init_session_state()
    config = _render_settings()

    st.title("🔢 Cell Chain Simulator")
    st.caption(
        "Each cell eats an adjacent number one below its own (0 eats the max value) "
        "and leaves the number one above behind."
    )

    engine: SimulationEngine | None = st.session_state.engine
    has_engine = engine is not None

    cols = st.columns(5)
    init_btn = cols[0].button("🧩 Initialize")
    step_btn = cols[1].button("⏭️ Step", disabled=not has_engine or st.session_state.running)
    start_btn = cols[2].button("▶️ Start", disabled=not has_engine or st.session_state.running)
    stop_btn = cols[3].button("⏹️ Stop", disabled=not st.session_state.running)
    restart_btn = cols[4].button("🔄 Restart", disabled=not has_engine)

    if init_btn:
        _initialize(config)
    elif not has_engine and (step_btn or start_btn or restart_btn):
        _show_status("error", "Please initialize the grid first")
    elif step_btn:
        _step(engine)
    elif start_btn:
        st.session_state.running = True
        _show_status("success", "Simulation started")
    elif stop_btn:
        st.session_state.running = False
        _show_status("info", "Simulation stopped")
    elif restart_btn:
        _restart(engine)

    engine = st.session_state.engine
    status = st.session_state.status
    status_box = st.empty()
    if status is not None:
        getattr(status_box, status[0])(status[1])

    if engine is None:
        st.info("Set the grid up in the sidebar, then press Initialize.")
        return

    grid_col, chart_col = st.columns([3, 2])
    grid_placeholder = grid_col.empty()
    tick_placeholder = chart_col.empty()
    chart_placeholder = chart_col.empty()

    def draw() -> None:
        grid_placeholder.plotly_chart(
            render_grid(engine.grid, tick=engine.tick_count),
            use_container_width=True,
        )
        tick_placeholder.metric("Tick", engine.tick_count)
        chart_placeholder.line_chart(population_frame(st.session_state.metrics.history))

    draw()

    # Continuous run: the script itself is the loop; pressing Stop reruns it.
    delay = st.session_state.config.run.delay_ms / 1000.0
    while st.session_state.running:
        time.sleep(delay)
        engine.tick()
        draw()
        if engine.is_extinct:
            st.session_state.running = False
            _show_status("info", "No more moves available")
            status_box.info("No more moves available")


if __name__ == "__main__":
    main()
