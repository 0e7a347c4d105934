def drop_timezone(value):
    """Bookings are stored as naive local times; an explicit offset is converted then dropped."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def format_duration(start_time, end_time):
    minutes = int((end_time - start_time).total_seconds() // 60)
    return f"{minutes // 60}h {minutes % 60}m"


def reject_null(value):
    """Partial updates may omit a required column but never set it to null."""
    if value is None:
        raise ValueError("may be omitted but not null")
    return value
