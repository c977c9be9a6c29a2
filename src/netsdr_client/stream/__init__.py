"""
NetSDR Client - Stream Module

IQ stream metrics and recording.
"""

from netsdr_client.stream.metrics import StreamMetrics, StreamMetricsTracker
from netsdr_client.stream.recorder import IQRecorder, RecordingSummary

__all__ = [
    "StreamMetrics",
    "StreamMetricsTracker",
    "IQRecorder",
    "RecordingSummary",
]
