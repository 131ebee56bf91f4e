#!/usr/bin/env python3
"""
CyberASIO Core - Simulated Audio Device Control Plane
Main entry point for the application
"""

from cyberasio.api.server import run_api_server
from cyberasio.cli.interface import AudioEngineCLI
from cyberasio.utils.config import ConfigManager
from cyberasio.utils.logger import set_log_level
import argparse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cyberasio",
        description="CyberASIO Core - simulated audio device control plane"
    )
    parser.add_argument("command", nargs="?", default="server", choices=["server", "cli"],
                        help="server: run the HTTP API (default); cli: interactive console")
    parser.add_argument("--port", type=int, default=None, help="Server port (default: 7788)")
    parser.add_argument("--static-dir", default=None, help="Static files directory (default: static)")
    parser.add_argument("--config", default="cyberasio.yaml", help="Settings file (YAML)")
    parser.add_argument("--state-file", default=None, help="Persisted audio configuration (default: config.txt)")
    return parser


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    config_manager = ConfigManager(args.config)
    settings = config_manager.load_config()
    settings = config_manager.apply_overrides(
        port=args.port,
        static_dir=args.static_dir,
        state_file=args.state_file
    )
    set_log_level(settings['logging']['level'])

    if args.command == "cli":
        print("Starting CyberASIO Core CLI...")
        cli = AudioEngineCLI(state_file=settings['persistence']['state_file'])
        cli.run_interactive_mode()
    else:
        print("=== CyberASIO Core v1.1.0 ===")
        run_api_server(settings)


if __name__ == "__main__":
    main()
