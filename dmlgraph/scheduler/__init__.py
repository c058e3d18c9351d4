"""Scheduling of record nodes into backend calls."""

from .models import Bucket, BucketKey, Schedule
from .planner import bucket_key_for, build_schedule

__all__ = [
    "Bucket",
    "BucketKey",
    "Schedule",
    "bucket_key_for",
    "build_schedule",
]
