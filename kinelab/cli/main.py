"""Main CLI entry point for Kinelab."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from kinelab.models.body import Body, VelocityPoint
from kinelab.physics.kinematics import SimulationConfig, TickMode, evaluate
from kinelab.reasoning.explainer import Language

app = typer.Typer(
    name="kinelab",
    help="Kinelab - two-body kinematics simulator",
    add_completion=False,
)
console = Console()


def parse_graph(text: Optional[str]) -> tuple[VelocityPoint, ...]:
    """Parse ``"t:v,t:v,..."`` into velocity control points."""
    if not text:
        return ()
    points = []
    for item in text.split(","):
        try:
            t, v = item.split(":")
            points.append(VelocityPoint(t=float(t), v=float(v)))
        except ValueError:
            raise typer.BadParameter(f"Invalid graph point '{item}', expected t:v")
    if len(points) < 2:
        raise typer.BadParameter("A velocity graph needs at least 2 points")
    return tuple(points)


def build_body(
    body_id: str,
    x0: float,
    v0: float,
    a: float,
    graph: Optional[str] = None,
) -> Body:
    points = parse_graph(graph)
    return Body(
        id=body_id,
        name=f"Object {body_id}",
        x0=x0,
        v0=v0,
        a=a,
        uses_velocity_graph=bool(points),
        velocity_graph=points,
    )


@app.callback()
def main():
    """Load environment variables from a local .env file."""
    load_dotenv()


@app.command()
def simulate(
    xa: float = typer.Option(0.0, "--xa", help="Object A initial position (m)"),
    va: float = typer.Option(5.0, "--va", help="Object A initial velocity (m/s)"),
    aa: float = typer.Option(0.0, "--aa", help="Object A acceleration (m/s^2)"),
    graph_a: Optional[str] = typer.Option(None, "--graph-a", help="Object A v(t) points, e.g. 0:0,10:10,20:0"),
    xb: float = typer.Option(50.0, "--xb", help="Object B initial position (m)"),
    vb: float = typer.Option(-2.0, "--vb", help="Object B initial velocity (m/s)"),
    ab: float = typer.Option(0.0, "--ab", help="Object B acceleration (m/s^2)"),
    graph_b: Optional[str] = typer.Option(None, "--graph-b", help="Object B v(t) points"),
    step: float = typer.Option(0.1, "--step", "-s", help="Sampling step (s)"),
    horizon: float = typer.Option(20.0, "--horizon", "-T", help="Simulation horizon (s)"),
    every: int = typer.Option(10, "--every", "-n", help="Show every n-th sample"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write samples to a JSON file"),
):
    """
    Sample both objects over the horizon and report where they meet.
    """
    from kinelab.engine import SimulationEngine

    if step <= 0 or horizon < 0:
        console.print("[red]Error: step must be positive and horizon non-negative[/red]")
        raise typer.Exit(1)

    try:
        engine = SimulationEngine(
            body_a=build_body("A", xa, va, aa, graph_a),
            body_b=build_body("B", xb, vb, ab, graph_b),
            config=SimulationConfig(step=step, horizon=horizon),
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    snapshot = engine.snapshot

    table = Table(title="Timeline")
    table.add_column("t (s)", justify="right", style="cyan")
    table.add_column("x_A (m)", justify="right")
    table.add_column("v_A (m/s)", justify="right")
    table.add_column("x_B (m)", justify="right")
    table.add_column("v_B (m/s)", justify="right")

    for i, row in enumerate(snapshot.timeline):
        if i % max(every, 1) == 0 or i == len(snapshot.timeline) - 1:
            table.add_row(
                f"{row.t:.1f}",
                f"{row.body_a.x:.2f}",
                f"{row.body_a.v:.2f}",
                f"{row.body_b.x:.2f}",
                f"{row.body_b.v:.2f}",
            )

    console.print(table)
    _display_crossing(snapshot.crossing)

    if output:
        output_data = {
            "body_a": snapshot.body_a.model_dump(),
            "body_b": snapshot.body_b.model_dump(),
            "crossing": snapshot.crossing.to_dict() if snapshot.crossing else None,
            "timeline": snapshot.timeline.to_records(),
        }
        output.write_text(json.dumps(output_data, indent=2))
        console.print(f"\n[green]Results saved to {output}[/green]")


def _display_crossing(crossing):
    if crossing is None:
        console.print(Panel("The objects never meet within the horizon.", border_style="yellow"))
    else:
        console.print(Panel(
            f"[bold]Objects meet at t = {crossing.t:.2f} s, x = {crossing.x:.2f} m[/bold]",
            border_style="green",
        ))


@app.command()
def state(
    t: float = typer.Argument(..., help="Query time (s)"),
    x0: float = typer.Option(0.0, "--x0"),
    v0: float = typer.Option(0.0, "--v0"),
    a: float = typer.Option(0.0, "--a"),
    graph: Optional[str] = typer.Option(None, "--graph", help="v(t) points, e.g. 0:0,10:10,20:0"),
):
    """
    Evaluate a single object's position and velocity at time t.
    """
    body = build_body("A", x0, v0, a, graph)
    x, v = evaluate(body, t)
    console.print(f"t = {t:g} s  x = {x:.3f} m  v = {v:.3f} m/s")


@app.command()
def explain(
    xa: float = typer.Option(0.0, "--xa"),
    va: float = typer.Option(5.0, "--va"),
    aa: float = typer.Option(0.0, "--aa"),
    xb: float = typer.Option(50.0, "--xb"),
    vb: float = typer.Option(-2.0, "--vb"),
    ab: float = typer.Option(0.0, "--ab"),
    language: Language = typer.Option(Language.EN, "--language", "-l", help="Response language"),
    provider: str = typer.Option("gemini", "--provider", "-p", help="LLM provider"),
):
    """
    Ask the LLM why the two objects meet or never meet.
    """
    asyncio.run(_explain(
        build_body("A", xa, va, aa),
        build_body("B", xb, vb, ab),
        language,
        provider,
    ))


async def _explain(body_a: Body, body_b: Body, language: Language, provider: str):
    from kinelab.engine import SimulationEngine, get_provider
    from kinelab.reasoning.explainer import OutcomeExplainer

    try:
        llm = get_provider(provider)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print(f"[yellow]Set {provider.upper()}_API_KEY environment variable[/yellow]")
        raise typer.Exit(1)

    snapshot = SimulationEngine(body_a=body_a, body_b=body_b).snapshot
    _display_crossing(snapshot.crossing)
    text = await OutcomeExplainer(llm).explain(
        snapshot.body_a, snapshot.body_b, snapshot.crossing, language
    )
    console.print(Panel(text, title="Explanation"))


@app.command()
def play(
    xa: float = typer.Option(0.0, "--xa"),
    va: float = typer.Option(5.0, "--va"),
    aa: float = typer.Option(0.0, "--aa"),
    xb: float = typer.Option(50.0, "--xb"),
    vb: float = typer.Option(-2.0, "--vb"),
    ab: float = typer.Option(0.0, "--ab"),
    horizon: float = typer.Option(20.0, "--horizon", "-T"),
    mode: TickMode = typer.Option(TickMode.FIXED, "--mode", "-m", help="Tick mode (fixed, elapsed)"),
    speed: float = typer.Option(1.0, "--speed", help="Playback speed for elapsed mode"),
):
    """
    Play the simulation in the terminal until the horizon is reached.
    """
    config = SimulationConfig(horizon=horizon, tick_mode=mode, speed=speed)
    asyncio.run(_play(build_body("A", xa, va, aa), build_body("B", xb, vb, ab), config))


async def _play(body_a: Body, body_b: Body, config: SimulationConfig):
    from kinelab.engine import SimulationEngine
    from kinelab.physics.clock import AsyncioFrameScheduler

    engine = SimulationEngine(
        body_a=body_a,
        body_b=body_b,
        config=config,
        scheduler=AsyncioFrameScheduler(config.frame_interval),
    )
    finished = asyncio.Event()

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed:.2f}/{task.total:.0f} s"),
        console=console,
    ) as progress:
        task = progress.add_task("Playing", total=config.horizon)

        def on_tick(t: float) -> None:
            frame = engine.frame()
            marker = " [green]met[/green]" if frame.crossing_reached else ""
            progress.update(
                task,
                completed=t,
                description=f"x_A={frame.body_a.x:7.2f}  x_B={frame.body_b.x:7.2f}{marker}",
            )
            if not engine.clock.is_playing:
                finished.set()

        engine.clock.subscribe(on_tick)
        engine.clock.play()
        try:
            await finished.wait()
        finally:
            engine.close()

    _display_crossing(engine.crossing)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h"),
    port: int = typer.Option(8000, "--port", "-p"),
    reload: bool = typer.Option(False, "--reload", "-r"),
):
    """
    Start the API server.
    """
    import uvicorn

    console.print(f"[green]Starting server at http://{host}:{port}[/green]")

    uvicorn.run(
        "kinelab.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def version():
    """Show version information."""
    from kinelab import __version__

    console.print(f"Kinelab v{__version__}")


if __name__ == "__main__":
    app()
