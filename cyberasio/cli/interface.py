from cyberasio.api.server import Components, build_components
from cyberasio.core.errors import CyberAsioError
from cyberasio.core.models import AudioConfiguration
from typing import Callable, List, Optional

HELP_TEXT = """Available commands:
  devices                 - List all audio devices
  info <id>               - Show device details
  activate <id>           - Make a device the active device
  deactivate <id>         - Deactivate a device
  scan                    - Re-scan audio devices
  config                  - Show current audio configuration
  set <rate> <buffer> <bits> <channels>
                          - Apply a new audio configuration
  profile save <id> <rate> <buffer> <bits> <channels>
  profile show <id>
  profile remove <id>     - Manage per-device profiles
  metrics                 - Show latency metrics
  save                    - Persist configuration to the state file
  quit                    - Exit"""

class AudioEngineCLI:
    """Command-line interface over a local device registry and configuration store"""

    def __init__(self, state_file: Optional[str] = None, components: Optional[Components] = None):
        self.state_file = state_file
        self.components = components

    def initialize(self) -> bool:
        """Build components and start the engine"""
        try:
            if self.components is None:
                self.components = build_components(state_file=self.state_file)
            self.components.engine.initialize(self.components.config_store.get_current())
            print("✓ CyberASIO Core initialized successfully")
        except Exception as e:
            print(f"✗ Failed to initialize: {e}")
            return False
        return True

    @staticmethod
    def _parse_ints(args: List[str], count: int) -> List[int]:
        if len(args) != count:
            raise ValueError(f"expected {count} numbers, got {len(args)}")
        return [int(arg) for arg in args]

    @staticmethod
    def _config_from(args: List[str]) -> AudioConfiguration:
        rate, buffer_size, bits, channels = AudioEngineCLI._parse_ints(args, 4)
        return AudioConfiguration(rate, buffer_size, bits, channels)

    def list_devices(self):
        """List all available devices"""
        devices = self.components.devices.get_devices()
        print("\nAvailable Audio Devices:")
        print("-" * 64)
        print(f"{'ID':<4} {'Name':<36} {'Type':<8} {'Status':<10}")
        print("-" * 64)

        for device in devices:
            print(f"{device.id:<4} {device.name:<36} {device.device_type.value:<8} {device.status.value:<10}")

    def show_device(self, device_id: int):
        info = self.components.devices.device_info(device_id)
        for key, value in info.items():
            print(f"{key:<16} {value}")

    def show_config(self, config: AudioConfiguration = None):
        config = config or self.components.config_store.get_current()
        print(f"Sample Rate: {config.sample_rate} Hz")
        print(f"Buffer Size: {config.buffer_size} samples")
        print(f"Bit Depth:   {config.bit_depth} bits")
        print(f"Channels:    {config.channels}")

    def show_metrics(self):
        """Show latency statistics"""
        metrics = self.components.engine.get_metrics()
        print(f"\nLatency Metrics:")
        print(f"Input:  {metrics.input_latency:.2f}ms")
        print(f"Output: {metrics.output_latency:.2f}ms")
        print(f"Total:  {metrics.total_latency:.2f}ms")

    def handle_profile(self, args: List[str]):
        store = self.components.config_store
        if len(args) < 2:
            print("Usage: profile save|show|remove <id> ...")
            return
        action, device_id = args[0], int(args[1])
        if action == "save":
            store.save_profile(device_id, self._config_from(args[2:]))
            print(f"✓ Profile saved for device {device_id}")
        elif action == "show":
            if not store.has_profile(device_id):
                print(f"No stored profile for device {device_id}, showing defaults")
            self.show_config(store.get_profile(device_id))
        elif action == "remove":
            store.remove_profile(device_id)
            print(f"✓ Profile removed for device {device_id}")
        else:
            print(f"Unknown profile action: {action}")

    def save(self):
        if self.components.state_file is None:
            print("No state file configured")
            return
        self.components.config_store.save(self.components.state_file, self.components.devices.active_device_id)
        print(f"✓ Configuration saved to {self.components.state_file}")

    def execute(self, line: str) -> bool:
        """Run one command line; returns False when the session should end"""
        parts = line.strip().split()
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]
        devices = self.components.devices

        try:
            if command in ["quit", "exit"]:
                return False
            elif command == "devices":
                self.list_devices()
            elif command == "info":
                self.show_device(int(args[0]))
            elif command == "activate":
                devices.activate(int(args[0]))
                print(f"✓ Device {args[0]} is now active")
            elif command == "deactivate":
                devices.deactivate(int(args[0]))
                print(f"✓ Device {args[0]} deactivated")
            elif command == "scan":
                success, found = devices.scan()
                print(f"{'✓' if success else '✗'} {len(found)} devices available")
            elif command == "config":
                self.show_config()
            elif command == "set":
                self.components.config_store.set_current(self._config_from(args))
                print("✓ Configuration applied")
            elif command == "profile":
                self.handle_profile(args)
            elif command in ["metrics", "stats"]:
                self.show_metrics()
            elif command == "save":
                self.save()
            elif command == "help":
                print(HELP_TEXT)
            else:
                print(f"Unknown command: {command}")
        except (IndexError, ValueError) as e:
            print(f"✗ Invalid arguments for '{command}': {e}")
        except CyberAsioError as e:
            print(f"✗ {e}")
        return True

    def run_interactive_mode(self, read_line: Callable[[str], str] = input):
        """Run interactive CLI mode"""
        if not self.initialize():
            return

        print("\nCyberASIO Core Interactive Mode")
        print("Type 'help' for commands")

        while True:
            try:
                if not self.execute(read_line("\n> ")):
                    break
            except KeyboardInterrupt:
                break
            except EOFError:
                break

        print("\nShutting down...")
        self.components.engine.shutdown()
