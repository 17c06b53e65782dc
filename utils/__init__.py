"""ProbeGate Utils"""
from utils.logger     import get_logger, set_level, log
from utils.validators import validate_target, validate_port, sanitize_banner
from utils.constants  import PortState, Protocol, MAX_PORTS_PER_SCAN, MAX_CONCURRENT_PROBES
from utils.config     import load_config, ConfigError
__all__ = ["get_logger", "set_level", "log", "validate_target", "validate_port",
           "sanitize_banner", "PortState", "Protocol", "MAX_PORTS_PER_SCAN",
           "MAX_CONCURRENT_PROBES", "load_config", "ConfigError"]
