"""
Entry point for the environment monitor.
Builds the monitor, shows the startup screen, runs the loops and serves
/metrics until SIGINT/SIGTERM, then shuts down cooperatively.
"""
import contextlib
import signal
from typing import Optional

import typer
import uvicorn

from zeromon import build_info
from zeromon.config import load_settings, logger, setup_logging
from zeromon.errors import DisplayError, PublishError, SensorError
from zeromon.monitor import Monitor, build_bus, build_display
from zeromon.pidfile import PidFile
from zeromon.publisher import build_publisher

app = typer.Typer(
    help="Temperature/humidity monitor with LCD, Prometheus and Adafruit IO outputs.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


def start_publisher(settings):
    """Publisher connection failures are not fatal, the monitor runs without it"""
    try:
        return build_publisher(settings)
    except PublishError as e:
        logger.error(f"Publishing disabled: {e}")
        return None


class MetricsServer(uvicorn.Server):
    """
    uvicorn server that leaves SIGINT/SIGTERM to the caller.
    uvicorn re-raises a captured signal once run() returns, which would
    terminate the process before the monitor is shut down.
    """
    @contextlib.contextmanager
    def capture_signals(self):
        yield


def build_server(monitor, port):
    config = uvicorn.Config(monitor.create_app(), host="0.0.0.0", port=port, log_level="warning")
    return MetricsServer(config)


@contextlib.contextmanager
def shutdown_on_signals(server, signals=(signal.SIGINT, signal.SIGTERM)):
    """Ask the server to exit on any of `signals`, restoring the old handlers afterwards"""
    def handle(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}")
        server.should_exit = True

    previous = {sig: signal.signal(sig, handle) for sig in signals}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def serve(server):
    """Serve the metrics app on the calling thread until should_exit is set"""
    logger.info(f"Serving metrics on :{server.config.port}/metrics")
    server.run()


def run(settings):
    setup_logging(settings.log_level)

    try:
        display = build_display(settings)
    except (ImportError, DisplayError) as e:
        logger.critical(f"Display init failed: {e}")
        return 1

    try:
        bus = build_bus(settings)
    except (ImportError, SensorError) as e:
        logger.critical(f"Sensor unavailable: {e}")
        display.close()
        return 1

    publisher = start_publisher(settings)
    monitor = Monitor(settings, bus, display, publisher)
    server = build_server(monitor, settings.port)

    with shutdown_on_signals(server), PidFile(settings.pidfile):
        try:
            monitor.show_banner()
        except DisplayError as e:
            logger.critical(f"Display banner failed: {e}")
            monitor.shutdown()
            bus.close()
            return 1

        monitor.start()
        try:
            serve(server)
        finally:
            logger.info("Shutting down")
            monitor.shutdown(timeout=settings.acquire_interval)
            bus.close()
    return 0


@app.command()
def main(
    room: Optional[str] = typer.Option(None, "--room", envvar="ZEROMON_ROOM", help="Room name."),
    aio_user: Optional[str] = typer.Option(
        None, "--aio-user", envvar="ZEROMON_AIOUSER", help="io.adafruit.com Username."
    ),
    aio_key: Optional[str] = typer.Option(
        None, "--aio-key", envvar="ZEROMON_AIOKEY", help="io.adafruit.com API Key (AIO)."
    ),
    port: Optional[int] = typer.Option(None, "--port", envvar="ZEROMON_PORT", help="Prometheus metrics port."),
    loglevel: Optional[int] = typer.Option(
        None, "--loglevel", envvar="ZEROMON_LOGLEVEL", help="Log level (0=emerg through 6=debug)."
    ),
    pidfile: Optional[str] = typer.Option(None, "--pidfile", envvar="ZEROMON_PIDFILE", help="PID file path."),
    simulate: bool = typer.Option(False, "--simulate", help="Use a simulated sensor and display."),
    version: bool = typer.Option(False, "--version", help="Print version and exit."),
) -> None:
    """Run the monitor."""
    typer.echo(build_info())
    if version:
        raise typer.Exit(code=0)

    try:
        settings = load_settings(
            room=room,
            aio_user=aio_user,
            aio_key=aio_key,
            port=port,
            log_level=loglevel,
            pidfile=pidfile,
            simulate=simulate or None,
        )
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    raise typer.Exit(code=run(settings))


if __name__ == "__main__":
    app()
