"""CSV report rendering for analytics results."""

import csv
import io
from datetime import datetime

from sales_tracker.models import Aggregate, AnalyticsResult, ItemKind

UTF8_BOM = "\ufeff"
DISPLAY_FORMAT = "%d.%m.%Y %H:%M"
FILENAME_FORMAT = "%Y-%m-%d"

AGGREGATE_HEADER = ["Sum", "Average", "Count", "Median", "90th percentile"]
DETAIL_HEADER = ["ID", "Type", "Amount", "Date", "Category", "Description", "Created", "Updated"]

KIND_LABELS = {
    ItemKind.INCOME: "Income",
    ItemKind.EXPENSE: "Expense",
}


def report_filename(start: datetime, end: datetime) -> str:
    return f"sales_tracker_{start.strftime(FILENAME_FORMAT)}_{end.strftime(FILENAME_FORMAT)}.csv"


def _aggregate_row(aggregate: Aggregate) -> list[str]:
    return [
        f"{aggregate.sum:.2f}",
        f"{aggregate.avg:.2f}",
        str(aggregate.count),
        f"{aggregate.median:.2f}",
        f"{aggregate.percent90:.2f}",
    ]


def render_csv(result: AnalyticsResult, start: datetime, end: datetime) -> str:
    """
    Render an analytics result as a spreadsheet-friendly CSV report.

    Semicolon separated with CRLF line endings and a leading BOM so that
    spreadsheet applications pick up the encoding. Sections: title, period,
    income and expense aggregates, then one row per item.
    """
    buffer = io.StringIO()
    buffer.write(UTF8_BOM)
    writer = csv.writer(buffer, delimiter=";", lineterminator="\r\n")

    writer.writerow(["SalesTracker report"])
    writer.writerow([f"Period: {start.strftime(DISPLAY_FORMAT)} - {end.strftime(DISPLAY_FORMAT)}"])
    writer.writerow([])

    writer.writerow(["INCOME"])
    writer.writerow(AGGREGATE_HEADER)
    writer.writerow(_aggregate_row(result.income))
    writer.writerow([])

    writer.writerow(["EXPENSES"])
    writer.writerow(AGGREGATE_HEADER)
    writer.writerow(_aggregate_row(result.expense))
    writer.writerow([])

    writer.writerow(["TRANSACTIONS"])
    writer.writerow(DETAIL_HEADER)
    for item in result.details:
        writer.writerow(
            [
                item.id,
                KIND_LABELS.get(ItemKind(item.kind), str(item.kind)),
                f"{item.amount:.2f}",
                item.occurred_at.strftime(DISPLAY_FORMAT),
                item.category or "",
                item.description or "",
                item.created_at.strftime(DISPLAY_FORMAT),
                item.updated_at.strftime(DISPLAY_FORMAT),
            ]
        )

    return buffer.getvalue()
