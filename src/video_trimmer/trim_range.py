"""
Trim range clamping and validation.

Handles never cross and never get closer than MIN_TRIM_DURATION: instead of
rejecting a drag that would break the range, the other handle is moved along.
"""
from .config import MIN_TRIM_DURATION, TIME_EPSILON
from .models import TrimRange, ValidationResult, VideoAsset


def set_start(trim_range: TrimRange, candidate: float, max_duration: float) -> TrimRange:
    """
    Move the start handle.

    Args:
        trim_range: Current range
        candidate: Requested start time in seconds
        max_duration: Duration of the asset

    Returns:
        New range satisfying the range invariants
    """
    clamped = max(0.0, min(candidate, max_duration))
    new_end = clamped + MIN_TRIM_DURATION

    if new_end > max_duration:
        # Pin to the last legal window
        return TrimRange(max_duration - MIN_TRIM_DURATION, max_duration)
    if new_end > trim_range.end:
        # Push end forward
        return TrimRange(clamped, new_end)
    return TrimRange(clamped, trim_range.end)


def set_end(trim_range: TrimRange, candidate: float, max_duration: float) -> TrimRange:
    """
    Move the end handle.

    Args:
        trim_range: Current range
        candidate: Requested end time in seconds
        max_duration: Duration of the asset

    Returns:
        New range satisfying the range invariants
    """
    clamped = max(MIN_TRIM_DURATION, min(candidate, max_duration))
    new_start = clamped - MIN_TRIM_DURATION

    if new_start < 0:
        return TrimRange(0.0, MIN_TRIM_DURATION)
    if new_start < trim_range.start:
        # Pull start back
        return TrimRange(new_start, clamped)
    return TrimRange(trim_range.start, clamped)


def is_valid(trim_range: TrimRange, duration: float) -> bool:
    return (
        trim_range.start >= 0
        and trim_range.end <= duration
        and trim_range.end > trim_range.start
        and trim_range.duration >= MIN_TRIM_DURATION - TIME_EPSILON
    )


def validate_trim_range(trim_range: TrimRange, asset: VideoAsset) -> ValidationResult:
    """Validate a range for export, reporting the first broken rule."""
    if not asset.is_valid:
        return ValidationResult.invalid(asset.error_message or "Invalid video file")

    if trim_range.start < 0:
        return ValidationResult.invalid("Start time cannot be negative")

    if trim_range.end > asset.duration:
        return ValidationResult.invalid("End time exceeds the video duration")

    if trim_range.end <= trim_range.start:
        return ValidationResult.invalid("End time must be after start time")

    if trim_range.duration < MIN_TRIM_DURATION - TIME_EPSILON:
        return ValidationResult.invalid(
            f"Minimum trim duration is {MIN_TRIM_DURATION} s"
        )

    return ValidationResult.valid()


def validate_start_time(time: float, asset: VideoAsset) -> ValidationResult:
    """Check a typed start timestamp."""
    if time < 0:
        return ValidationResult.invalid("Time cannot be negative")
    if time >= asset.duration:
        return ValidationResult.invalid("Time exceeds the video duration")
    return ValidationResult.valid()


def validate_end_time(time: float, asset: VideoAsset) -> ValidationResult:
    """Check a typed end timestamp."""
    if time <= 0:
        return ValidationResult.invalid("Time must be greater than zero")
    if time > asset.duration:
        return ValidationResult.invalid("Time exceeds the video duration")
    return ValidationResult.valid()
