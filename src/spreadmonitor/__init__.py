from spreadmonitor.models import PairConfig, SpreadRecord, Topic
from spreadmonitor.monitor.coordinator import MonitorCoordinator

__version__ = "0.1.0"
__all__ = ["MonitorCoordinator", "PairConfig", "SpreadRecord", "Topic", "__version__"]
