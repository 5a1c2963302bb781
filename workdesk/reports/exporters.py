# -*- coding: utf-8 -*-
"""
Report Exporters - WorkDesk
===========================

Export status reports to plain text (markdown), HTML, CSV and JSON.
"""

from abc import ABC, abstractmethod
from html import escape
from typing import Dict, List, TYPE_CHECKING
import csv
import io
import json

if TYPE_CHECKING:
    from .status_report import ReportData, ReportFormat


def _label(key: str) -> str:
    return key.replace("_", " ").title()


class BaseExporter(ABC):
    """Base class for report exporters."""

    media_type = "text/plain"

    @abstractmethod
    def export(self, report: "ReportData") -> str:
        pass

    def save(self, report: "ReportData", filepath: str) -> None:
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.export(report))


class TextExporter(BaseExporter):
    """Markdown-style text, ready to paste into a standup channel."""

    media_type = "text/markdown"

    def export(self, report: "ReportData") -> str:
        lines = [f"## {report.config.title}", ""]
        for section in sorted(report.sections, key=lambda s: s.order):
            if section.section_type == "summary":
                lines.append(f"### {section.title}:")
                for key, value in section.content.items():
                    lines.append(f"- {_label(key)}: {value}")
            else:
                lines.append(f"### {section.title} ({len(section.content)}):")
                if not section.content:
                    lines.append("- None")
                for item in section.content:
                    lines.append(self._render_item(item))
                    if item.get("notes"):
                        lines.append(f"    Note: {item['notes']}")
            lines.append("")
        return "\n".join(lines)

    @staticmethod
    def _render_item(item: Dict) -> str:
        if "category" in item:
            return f"- {item['category']}: {item['tasks']} tasks ({item['percentage']}%)"
        text = f"- {item['title']} [{item['status']}]"
        if item.get("due_date"):
            text += f" (Due: {item['due_date']})"
        if item.get("days_overdue"):
            days = item["days_overdue"]
            text += f" ({days} {'day' if days == 1 else 'days'} overdue)"
        if item.get("estimated_time"):
            text += f" (Est: {item['estimated_time']} min)"
        return text


class HTMLExporter(BaseExporter):
    """Export reports to HTML format."""

    media_type = "text/html"

    def export(self, report: "ReportData") -> str:
        title = escape(report.config.title)
        html_parts = [
            "<!DOCTYPE html>",
            "<html lang='en'>",
            "<head>",
            "  <meta charset='UTF-8'>",
            f"  <title>{title}</title>",
            "  <style>",
            self._get_styles(),
            "  </style>",
            "</head>",
            "<body>",
            f"  <header><h1>{title}</h1></header>",
            f"  <p class='meta'>Generated: {report.generated_at.strftime('%Y-%m-%d %H:%M')}</p>",
        ]
        for section in sorted(report.sections, key=lambda s: s.order):
            html_parts.append(self._render_section(section))
        html_parts.extend(["</body>", "</html>"])
        return "\n".join(html_parts)

    def _get_styles(self) -> str:
        return """
        body { font-family: Arial, sans-serif; margin: 40px; background: #f5f5f5; }
        h2 { border-bottom: 2px solid #4a6cf7; padding-bottom: 5px; }
        .meta { color: #666; font-size: 0.9em; }
        .section { background: white; padding: 20px; margin: 20px 0; border-radius: 8px; }
        table { width: 100%; border-collapse: collapse; }
        th { background: #1f2937; color: white; padding: 8px; text-align: left; }
        td { padding: 8px; border-bottom: 1px solid #ddd; }
        .kpi { display: inline-block; background: #4a6cf7; color: white; padding: 8px 16px; margin: 4px; border-radius: 5px; }
        """

    def _render_section(self, section) -> str:
        html = ["  <div class='section'>", f"    <h2>{escape(section.title)}</h2>"]
        if section.section_type == "summary":
            html.append(self._render_summary(section.content))
        else:
            html.append(self._render_table(section.content))
        html.append("  </div>")
        return "\n".join(html)

    def _render_table(self, items: List[Dict]) -> str:
        if not items:
            return "    <p>None</p>"
        headers = list(items[0].keys())
        rows = ["    <table>", "      <tr>"]
        rows.extend([f"        <th>{_label(h)}</th>" for h in headers])
        rows.append("      </tr>")
        for item in items:
            rows.append("      <tr>")
            rows.extend([f"        <td>{escape(str(item.get(h, '')))}</td>" for h in headers])
            rows.append("      </tr>")
        rows.append("    </table>")
        return "\n".join(rows)

    def _render_summary(self, data: Dict) -> str:
        rows = ["    <div class='summary'>"]
        for key, value in data.items():
            rows.append(f"      <span class='kpi'>{_label(key)}: {escape(str(value))}</span>")
        rows.append("    </div>")
        return "\n".join(rows)


class CSVExporter(BaseExporter):
    """Export reports to CSV format."""

    media_type = "text/csv"

    def export(self, report: "ReportData") -> str:
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow(["Report", report.config.title])
        writer.writerow(["Type", report.config.report_type.value])
        writer.writerow(["Generated", report.generated_at.isoformat()])
        writer.writerow([])

        for section in sorted(report.sections, key=lambda s: s.order):
            writer.writerow([f"=== {section.title} ==="])
            if isinstance(section.content, dict):
                for key, value in section.content.items():
                    writer.writerow([key, value])
            elif section.content:
                headers = list(section.content[0].keys())
                writer.writerow(headers)
                for item in section.content:
                    writer.writerow([item.get(h, "") for h in headers])
            writer.writerow([])

        return output.getvalue()


class JSONExporter(BaseExporter):
    """Export reports to JSON format."""

    media_type = "application/json"

    def export(self, report: "ReportData") -> str:
        return json.dumps(report.to_dict(), indent=2, ensure_ascii=False, default=str)


class ExporterFactory:
    """Factory for creating exporters."""

    _exporters = {
        "text": TextExporter,
        "html": HTMLExporter,
        "csv": CSVExporter,
        "json": JSONExporter,
    }

    @classmethod
    def get_exporter(cls, format: "ReportFormat") -> BaseExporter:
        key = getattr(format, "value", format)
        exporter_class = cls._exporters.get(key)
        if not exporter_class:
            raise ValueError(f"Unsupported format: {key}")
        return exporter_class()

    @classmethod
    def supported_formats(cls) -> List[str]:
        return list(cls._exporters)
