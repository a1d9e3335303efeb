"""
smswatch/cli.py
Command-line interface for smswatch.

USAGE:
  smswatch [monitor|list|serve|init] [options]

EXAMPLES:
  # Watch for new SMS (device reachable over adb tcpip)
  smswatch --device-ip 192.168.1.50

  # List the newest 20 messages, keyword classification only
  smswatch list --device-ip 192.168.1.50 --limit 20 --no-agent

  # Remote classification (key from ANTHROPIC_API_KEY)
  smswatch monitor --device-ip 192.168.1.50 --agent

  # Watch and serve recent results on http://127.0.0.1:8766
  smswatch serve --device-ip 192.168.1.50

  # Write a default smswatch_config.json to edit
  smswatch init
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from smswatch.config import CONFIG_FILENAME, DEFAULT_CONFIG, ensure_config, save_config
from smswatch.detectors.classifier import MessageClassifier
from smswatch.display import BOLD, CYAN, GREEN, RED, RESET, YELLOW, ConsoleDisplay, render_table
from smswatch.errors import ConfigError, DeviceUnreachable, SourceError
from smswatch.filtering.source_filter import SourceFilter
from smswatch.llm.base import RemoteClassifier
from smswatch.monitor.poll_loop import PollLoop, Sink, list_messages
from smswatch.sources.adb import AdbClient, AdbConnection, SmsContentSource

logger = logging.getLogger(__name__)

MODES = ('monitor', 'list', 'serve', 'init')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog            = 'smswatch',
        description     = 'smswatch — live SMS watcher with OTP extraction and classification',
        formatter_class = argparse.RawDescriptionHelpFormatter,
        epilog = """
Settings not given on the command line come from smswatch_config.json
in --config-dir (default: current directory), then built-in defaults.
        """
    )
    parser.add_argument(
        'mode',
        nargs   = '?',
        default = 'monitor',
        choices = MODES,
        help    = 'monitor (default), list, serve or init',
    )
    parser.add_argument(
        '--config-dir',
        type    = Path,
        default = None,
        help    = f'Directory holding {CONFIG_FILENAME} (default: current directory)',
    )
    parser.add_argument('--device-ip', help='Android device IP address')
    parser.add_argument('--port', type=int, help='adb port (default: 5555)')
    parser.add_argument('--adb-path', help='Path to the adb executable (default: adb)')
    parser.add_argument(
        '--interval',
        type = int,
        help = 'Polling interval in milliseconds (default: 5000)',
    )
    parser.add_argument(
        '--filter-mode',
        choices = ('None', 'Include', 'Exclude'),
        help    = 'Sender filter mode (sources are read from the config file)',
    )
    parser.add_argument(
        '--agent',
        dest    = 'agent',
        action  = 'store_true',
        default = None,
        help    = 'Enable remote classification',
    )
    parser.add_argument(
        '--no-agent',
        dest    = 'agent',
        action  = 'store_false',
        help    = 'Keyword classification only',
    )
    parser.add_argument(
        '--backend',
        choices = ('anthropic', 'ollama'),
        help    = 'Remote classifier backend (default: anthropic)',
    )
    parser.add_argument('--model', help='Remote model name')
    parser.add_argument(
        '--no-otp',
        action = 'store_true',
        help   = 'Disable regex OTP extraction',
    )
    parser.add_argument(
        '--limit',
        type = int,
        help = 'Max messages shown by list (default: 50)',
    )
    parser.add_argument('--api-host', help='Bind host for serve (default: 127.0.0.1)')
    parser.add_argument('--api-port', type=int, help='Bind port for serve (default: 8766)')
    parser.add_argument(
        '--verbose', '-v',
        action = 'store_true',
        help   = 'Enable debug logging',
    )
    return parser


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Copy explicitly given CLI flags into config. Mutates and returns config."""
    overrides = (
        ('device_ip',   'adb',        'device_ip'),
        ('port',        'adb',        'port'),
        ('adb_path',    'adb',        'path'),
        ('interval',    'monitoring', 'polling_interval_ms'),
        ('limit',       'monitoring', 'max_messages'),
        ('filter_mode', 'filters',    'mode'),
        ('agent',       'agent',      'enabled'),
        ('backend',     'agent',      'backend'),
        ('model',       'agent',      'model'),
        ('api_host',    'api',        'host'),
        ('api_port',    'api',        'port'),
    )
    for attr, section, key in overrides:
        value = getattr(args, attr, None)
        if value is not None:
            config.setdefault(section, {})[key] = value
    if getattr(args, 'model', None) and str(config['agent'].get('backend', '')).lower() == 'ollama':
        config['agent']['ollama_model'] = args.model
    if getattr(args, 'no_otp', False):
        config.setdefault('otp', {})['enabled'] = False
    return config


def build_remote(config: Dict[str, Any]) -> Optional[RemoteClassifier]:
    agent = config.get('agent', {})
    if not agent.get('enabled'):
        return None

    backend = str(agent.get('backend', 'anthropic')).lower()
    if backend == 'ollama':
        from smswatch.llm.ollama_adapter import OllamaClassifier
        remote = OllamaClassifier(
            model       = agent.get('ollama_model', 'llama3.1:8b'),
            host        = agent.get('ollama_host', 'http://localhost:11434'),
            max_tokens  = int(agent.get('max_tokens', 256)),
            timeout_sec = float(agent.get('timeout_sec', 15)),
        )
        if not remote.is_available():
            logger.warning("Ollama unavailable — heuristic classification only.")
            return None
        return remote

    if backend == 'anthropic':
        from smswatch.llm.anthropic_adapter import AnthropicClassifier
        remote = AnthropicClassifier(
            api_key     = agent.get('api_key', ''),
            model       = agent.get('model', 'claude-sonnet-4-20250514'),
            max_tokens  = int(agent.get('max_tokens', 256)),
            timeout_sec = float(agent.get('timeout_sec', 15)),
        )
        if not remote.is_configured():
            logger.warning("Agent enabled but no API key set — heuristic classification only.")
        return remote

    raise ConfigError(f"Unknown agent backend: {backend!r}")


def build_loop(config: Dict[str, Any], source, sinks: List[Sink] = ()) -> PollLoop:
    return PollLoop(
        source        = source,
        classifier    = MessageClassifier(build_remote(config)),
        source_filter = SourceFilter.from_config(config.get('filters', {})),
        sinks         = sinks,
        interval_sec  = int(config['monitoring']['polling_interval_ms']) / 1000,
        otp_enabled   = bool(config['otp']['enabled']),
    )


def connect_source(config: Dict[str, Any]) -> SmsContentSource:
    """Reach the device (bounded retries) and return the SMS source. Raises DeviceUnreachable."""
    adb = config['adb']
    if not adb.get('device_ip'):
        raise ConfigError(
            "Device IP not configured. Set adb.device_ip in "
            f"{CONFIG_FILENAME}, SMSWATCH_DEVICE_IP, or pass --device-ip."
        )
    timeout_ms = int(adb.get('command_timeout_ms', 10000))
    AdbConnection(adb['path'], adb['device_ip'], int(adb['port']), timeout_ms).reconnect()
    serial = f"{adb['device_ip']}:{adb['port']}"
    return SmsContentSource(AdbClient(adb['path'], serial, timeout_ms))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # ── LOGGING SETUP ────────────────────────────────────────
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level   = log_level,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )

    # ── INIT ─────────────────────────────────────────────────
    if args.mode == 'init':
        path = (args.config_dir or Path.cwd()) / CONFIG_FILENAME
        if path.exists():
            _print(f"{YELLOW}{path} already exists — not overwritten.{RESET}")
            return 1
        save_config(DEFAULT_CONFIG, args.config_dir)
        _ok(f"Wrote {path}")
        return 0

    config = apply_overrides(ensure_config(args.config_dir), args)

    try:
        _banner(config)
        source = connect_source(config)
        if args.mode == 'list':
            return _run_list(config, source)
        if args.mode == 'serve':
            return _run_serve(config, source)
        return _run_monitor(config, source)
    except ConfigError as e:
        _print(f"{RED}Error: {e}{RESET}")
        return 1
    except DeviceUnreachable as e:
        _print(f"{RED}{e}. Ensure:{RESET}")
        _print(f"{YELLOW}  1. adb is installed and in PATH{RESET}")
        _print(f"{YELLOW}  2. USB debugging is enabled on the phone{RESET}")
        _print(f"{YELLOW}  3. 'adb tcpip 5555' was run once with USB connected{RESET}")
        _print(f"{YELLOW}  4. Phone and PC are on the same network{RESET}")
        return 1


# ── MODES ────────────────────────────────────────────────────

def _run_list(config: Dict[str, Any], source: SmsContentSource) -> int:
    loop = build_loop(config, source)
    try:
        results = list_messages(loop, limit=int(config['monitoring']['max_messages']))
    except SourceError as e:
        _print(f"{RED}Error reading SMS: {e}{RESET}")
        return 1
    if not results:
        _print(f"{YELLOW}No messages found.{RESET}")
        return 0
    for line in render_table(results):
        _print(line)
    return 0


def _run_monitor(config: Dict[str, Any], source: SmsContentSource) -> int:
    display = ConsoleDisplay(highlight_threshold=float(config['otp']['highlight_threshold']))
    loop = build_loop(config, source, [display])
    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())

    _step("Loading existing messages... (Ctrl+C to stop)")
    loop.run(stop)
    return 0


def _run_serve(config: Dict[str, Any], source: SmsContentSource) -> int:
    import uvicorn
    from smswatch.api import WatchAPI, build_app
    from smswatch.monitor.feed import ResultFeed

    feed = ResultFeed(maxlen=int(config['monitoring']['max_messages']))
    loop = build_loop(config, source, [feed])
    stop = threading.Event()
    worker = threading.Thread(target=loop.run, args=(stop,), name='smswatch-poll', daemon=True)
    worker.start()

    host, port = config['api']['host'], int(config['api']['port'])
    _ok(f"API at http://{host}:{port}  (docs: /docs)")
    try:
        uvicorn.run(build_app(WatchAPI(loop, feed)), host=host, port=port, log_level='info')
    finally:
        stop.set()
        worker.join(timeout=int(config['adb'].get('command_timeout_ms', 10000)) / 1000 + 1)
    return 0


# ── PRINT HELPERS ────────────────────────────────────────────

def _banner(config: Dict[str, Any]) -> None:
    adb, agent = config['adb'], config['agent']
    _print(f"\n{BOLD}{CYAN}  smswatch — live SMS watcher{RESET}")
    _print(f"  Device         : {CYAN}{adb.get('device_ip') or '?'}:{adb.get('port')}{RESET}")
    _print(f"  Filter mode    : {CYAN}{config['filters'].get('mode')}{RESET}")
    for s in config['filters'].get('sources', []):
        _print(f"    - {s.get('label', '')}: {s.get('value', '')} ({s.get('match_type', 'Exact')})")
    _print(f"  OTP extraction : {CYAN}{'enabled' if config['otp']['enabled'] else 'disabled'}{RESET}")
    if agent.get('enabled'):
        _print(f"  Agent          : {GREEN}enabled ({agent.get('backend')}, model: {agent.get('model')}){RESET}")
    else:
        _print(f"  Agent          : {CYAN}disabled (heuristic classification){RESET}")
    _print("")


def _step(msg): _print(f"  {CYAN}→{RESET} {msg}")
def _ok(msg):   _print(f"  {GREEN}✓{RESET} {msg}")
def _print(msg): print(msg)


if __name__ == '__main__':
    sys.exit(main())
