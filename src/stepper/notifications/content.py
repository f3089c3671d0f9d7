"""Reminder text. Kept apart from the schedulers so copy changes don't touch policy code."""
from datetime import timedelta


def _minutes(duration: timedelta) -> int:
    return int(duration.total_seconds() // 60)


def inactivity_message(inactive_for: timedelta) -> tuple:
    """(title, body) for the first reminder after the threshold is crossed."""
    return (
        "Time to Move! 👟",
        f"You haven't moved in {_minutes(inactive_for)} minutes. Let's get those steps in!",
    )


def repeated_inactivity_message(inactive_for: timedelta) -> tuple:
    """(title, body) for follow-up reminders while the user stays inactive."""
    return (
        "Still Inactive! 👟",
        f"You haven't moved in {_minutes(inactive_for)} minutes. Time to get those steps in!",
    )


def bedtime_message(steps_remaining: int, lead_time: timedelta) -> tuple:
    """(title, body) for the steps-remaining reminder before bedtime."""
    hours, minutes = divmod(_minutes(lead_time), 60)
    return (
        "Stepper Reminder 🏃",
        f"You need {steps_remaining} more steps before bedtime in {hours}h {minutes}m!",
    )
