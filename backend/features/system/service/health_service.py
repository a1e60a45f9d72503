from datetime import datetime, timezone, timedelta
import psutil
from backend.common.base.base_service import BaseService, Clock
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

class HealthService(BaseService):
    def __init__(self, clock: Clock = None):
        super().__init__(clock)
        self.startup_time = self.now()

    def _get_server_time_payload(self):
        localized = self.now().astimezone()
        offset = localized.utcoffset() or timedelta(0)

        tzinfo = localized.tzinfo
        tz_label = getattr(tzinfo, 'key', None) if tzinfo else None
        if not tz_label and tzinfo:
            tz_label = tzinfo.tzname(localized)

        return {
            'timestamp': localized.isoformat(),
            'timezone': tz_label or 'UTC',
            'utc_offset_minutes': int(offset.total_seconds() // 60)
        }

    def get_health_data(self):
        cpu_percent = psutil.cpu_percent(interval=0)
        memory = psutil.virtual_memory()

        uptime_duration = self.now() - self.startup_time
        uptime_hours = uptime_duration.total_seconds() / 3600

        return {
            'status': 'healthy',
            **self._get_server_time_payload(),
            'uptime_hours': round(uptime_hours, 2),
            'started_at': self.startup_time.astimezone(timezone.utc).isoformat(),
            'system_metrics': {
                'cpu_usage': round(cpu_percent, 1),
                'memory_usage': round(memory.percent, 1),
                'memory_available_gb': round(memory.available / (1024**3), 2),
            },
        }
