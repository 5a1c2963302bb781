# -*- coding: utf-8 -*-
"""
Reports Module - WorkDesk
=========================

Daily, weekly and custom range status reports with text, HTML, CSV and
JSON export.
"""

from .status_report import (
    ReportType,
    ReportFormat,
    ReportConfig,
    ReportSection,
    ReportData,
    StatusReportGenerator,
    format_minutes,
)

from .exporters import (
    BaseExporter,
    TextExporter,
    HTMLExporter,
    CSVExporter,
    JSONExporter,
    ExporterFactory,
)

__all__ = [
    "ReportType",
    "ReportFormat",
    "ReportConfig",
    "ReportSection",
    "ReportData",
    "StatusReportGenerator",
    "format_minutes",
    "BaseExporter",
    "TextExporter",
    "HTMLExporter",
    "CSVExporter",
    "JSONExporter",
    "ExporterFactory",
]
