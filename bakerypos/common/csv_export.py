"""
CSV export for list and report endpoints.
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import Response


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Optional[Dict[str, str]] = None
) -> Response:
    """
    Create a CSV response from a list of dictionaries.

    Args:
        data: rows to export
        filename: name offered to the browser
        headers: optional mapping of field names to CSV column titles

    Returns:
        FastAPI Response with CSV content
    """
    fieldnames = list(headers.keys()) if headers else (list(data[0].keys()) if data else [])
    titles = list(headers.values()) if headers else fieldnames

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
    if fieldnames:
        writer.writerow(dict(zip(fieldnames, titles)))
    for row in data:
        writer.writerow({key: format_csv_value(row.get(key)) for key in fieldnames})

    csv_content = output.getvalue()
    output.close()

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    elif isinstance(value, (date, datetime)):
        return value.isoformat()
    elif isinstance(value, bool):
        return "Yes" if value else "No"
    elif isinstance(value, (Decimal, UUID)):
        return str(value)
    elif hasattr(value, "value"):
        return str(value.value)
    return str(value)
