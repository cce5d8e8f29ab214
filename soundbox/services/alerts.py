import logging

logger = logging.getLogger("alerts")


def format_duration(minutes):
    hours, mins = divmod(int(minutes), 60)
    if hours:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def alert_message(store_name, minutes_offline):
    return f"Soundbox at {store_name} has been offline for {format_duration(minutes_offline)}"


def log_alert(store_name, minutes_offline):
    logger.warning(alert_message(store_name, minutes_offline))
