"""Attachment scanning interface and verdict recording."""

from collab.attachments.scanner import Scanner, ScanVerdict, record_scan

__all__ = ["ScanVerdict", "Scanner", "record_scan"]
