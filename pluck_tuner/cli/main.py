"""Main entry point for the pluck-tuner CLI."""

import json
import sys
import time
from typing import Optional

import click
import sounddevice as sd

from ..audio.audio_config import CANDIDATE_RATES, AudioDeviceError, device_accepts
from ..core.config import ConfigManager
from ..core.events import TunerEvents
from ..core.factory import ComponentFactory
from ..logging_config import get_logger, setup_logging
from ..note_types import FrameDiagnostics, Tuning
from ..note_utils import find_note, get_tuning_options_for
from ..ui.console import ConsoleRenderer

logger = get_logger(__name__)


class TuningParamType(click.ParamType):
    """Comma-separated note names, e.g. ``E2,A2,D3,G3,B3,E4``."""

    name = "tuning"

    def convert(self, value, param, ctx):
        if isinstance(value, Tuning):
            return value
        names = [part.strip() for part in value.split(",") if part.strip()]
        try:
            return Tuning.from_names(names)
        except ValueError as e:
            self.fail(str(e), param, ctx)


TUNING = TuningParamType()

config_dir_option = click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding the JSON configuration (default ~/.config/pluck_tuner)",
)
tuning_option = click.option(
    "--tuning",
    type=TUNING,
    default="E2,A2,D3,G3,B3,E4",
    show_default=True,
    help="Six comma-separated note names, lowest string first",
)


def _debug_events() -> TunerEvents:
    events = TunerEvents()

    def trace(diag: FrameDiagnostics) -> None:
        logger.debug(
            f"frame={diag.frame_index} rms={diag.rms:.0f} outcome={diag.outcome.name} "
            f"chosen={diag.chosen_hz} smoothed={diag.smoothed_hz}"
        )

    events.on_frame_processed(trace)
    return events


@click.group()
@click.version_option(package_name="pluck-tuner")
def cli():
    """Pluck Tuner - stable pitch tracking for plucked strings."""


@cli.command()
@click.option("--device", "device_id", type=int, default=None, help="Audio input device ID")
@click.option("--sample-rate", type=int, default=None, help="Sample rate in Hz (probed if omitted)")
@tuning_option
@click.option("--banner", is_flag=True, help="Show the note name in large letters")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--duration", type=float, default=None, help="Stop after this many seconds")
@config_dir_option
def listen(device_id, sample_rate, tuning, banner, debug, duration, config_dir):
    """Tune from the live audio input."""
    setup_logging("DEBUG" if debug else "WARNING")
    factory = ComponentFactory(ConfigManager(config_dir))

    overrides = {}
    if device_id is not None:
        overrides["device_id"] = device_id
    if sample_rate is not None:
        overrides["sample_rate"] = sample_rate

    events = _debug_events() if debug else None
    try:
        source = factory.create_live_source(**overrides)
        service = factory.create_service(
            source, ConsoleRenderer(banner=banner), tuning=tuning, events=events
        )
        service.start()
    except AudioDeviceError as e:
        raise click.ClickException(str(e))

    click.echo(f"Listening at {source.sample_rate} Hz, {source.frame_length} samples per frame. Ctrl+C to stop.")
    deadline = None if duration is None else time.monotonic() + duration
    try:
        while service.is_running():
            if deadline is not None and time.monotonic() >= deadline:
                break
            time.sleep(0.1)
    except KeyboardInterrupt:
        click.echo("")
    finally:
        service.stop()


@cli.command()
@click.argument("wav", type=click.Path(exists=True, dir_okay=False))
@click.option("--frame-length", type=int, default=None, help="Samples per frame (default ~46 ms)")
@tuning_option
@click.option("--debug", is_flag=True, help="Enable debug logging")
@config_dir_option
def analyze(wav, frame_length, tuning, debug, config_dir):
    """Run the tuner over a WAV file, one line per frame."""
    setup_logging("DEBUG" if debug else "WARNING")
    factory = ComponentFactory(ConfigManager(config_dir))
    source = factory.create_wav_source(wav, frame_length)
    engine = factory.create_engine(
        events=_debug_events() if debug else None, fixed_sample_rate=source.sample_rate
    )
    renderer = ConsoleRenderer()

    for index, frame in enumerate(source.frames(), start=1):
        result = engine.process_frame(frame, tuning)
        if result.should_hide:
            click.echo(f"{index:5d}  hide")
        elif result.state is not None:
            click.echo(f"{index:5d}  {renderer.format_state(result.state)}")
        else:
            click.echo(f"{index:5d}  (no change)")


@cli.command()
def devices():
    """List input devices and the candidate sample rates they accept."""
    try:
        all_devices = sd.query_devices()
    except Exception as e:  # PortAudio may be missing entirely
        raise click.ClickException(f"Could not query audio devices: {e}")

    for device_id, device in enumerate(all_devices):
        if device["max_input_channels"] <= 0:
            continue
        rates = [rate for rate in CANDIDATE_RATES if device_accepts(device_id, rate)]
        rate_list = ", ".join(str(rate) for rate in rates) or "none"
        click.echo(f"{device_id:3d}: {device['name']}  [{rate_list}]")


@cli.command()
@click.argument("note")
@click.option("--range", "semitone_range", type=int, default=4, show_default=True,
              help="Semitones either side of the note")
def notes(note, semitone_range):
    """Show the notes a string tuned to NOTE can be switched to."""
    try:
        target = find_note(note)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NOTE")
    for option in get_tuning_options_for(target, semitone_range):
        marker = "*" if option.name == target.name else " "
        click.echo(f"{marker} {option.name:<4} {option.frequency:8.2f} Hz")


@cli.command(name="config")
@config_dir_option
def show_config(config_dir):
    """Print the effective configuration as JSON."""
    manager = ConfigManager(config_dir)
    click.echo(json.dumps(manager.all_configs(), indent=2))


def main(args: Optional[list] = None) -> int:
    """Console-script entry point."""
    try:
        cli.main(args=args, prog_name="pluck-tuner", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
