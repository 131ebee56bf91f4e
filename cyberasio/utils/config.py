from cyberasio.utils.logger import logger
from pathlib import Path
from typing import Dict, Optional
import copy
import yaml

class ConfigManager:
    """Manages application settings (server, persistence, logging)"""
    
    def __init__(self, config_path: str = "cyberasio.yaml"):
        self.config_path = Path(config_path)
        self.config = self._load_default_config()
        
    def _load_default_config(self) -> Dict:
        """Load default configuration"""
        return {
            'server': {
                'host': '127.0.0.1',
                'port': 7788,
                'static_dir': 'static'
            },
            'persistence': {
                'state_file': 'config.txt',
                'auto_save': True
            },
            'logging': {
                'level': 'INFO'
            }
        }
    
    def load_config(self) -> Dict:
        """Load configuration from file, merged section by section over defaults"""
        try:
            if self.config_path.exists():
                with open(self.config_path, 'r') as f:
                    loaded_config = yaml.safe_load(f) or {}
                if not isinstance(loaded_config, dict):
                    raise ValueError(f"expected a mapping, got {type(loaded_config).__name__}")
                self._merge(loaded_config)
            return self.config
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            return self.config

    def _merge(self, loaded_config: Dict):
        for section, values in loaded_config.items():
            if isinstance(values, dict) and isinstance(self.config.get(section), dict):
                self.config[section].update(values)
            else:
                self.config[section] = values

    def apply_overrides(self, port: Optional[int] = None, static_dir: Optional[str] = None,
                        state_file: Optional[str] = None) -> Dict:
        """Apply command-line overrides on top of the loaded settings"""
        if port is not None:
            self.config['server']['port'] = port
        if static_dir is not None:
            self.config['server']['static_dir'] = static_dir
        if state_file is not None:
            self.config['persistence']['state_file'] = state_file
        return self.config
    
    def save_config(self, config: Dict = None):
        """Save configuration to file"""
        try:
            config_to_save = copy.deepcopy(config or self.config)
            with open(self.config_path, 'w') as f:
                yaml.safe_dump(config_to_save, f, default_flow_style=False)
            logger.info("Configuration saved")
        except Exception as e:
            logger.error(f"Failed to save config: {e}")
