from sales_tracker.models import Aggregate, AnalyticsResult, ItemKind
from sales_tracker.reports import render_csv, report_filename
from tests.fakes import make_item, ts


def test_render_csv_sections():
    result = AnalyticsResult(
        income=Aggregate.from_amounts([100, 200]),
        expense=Aggregate(),
        details=[
            make_item(7, ItemKind.INCOME, 200, ts("2024-01-15T08:30:00"), category="bonus"),
            make_item(3, ItemKind.EXPENSE, 0, ts("2024-01-02T00:00:00"), description="a;b"),
        ],
    )

    text = render_csv(result, ts("2024-01-01T00:00:00"), ts("2024-01-31T23:59:00"))

    assert text.startswith("\ufeff")
    lines = text[1:].split("\r\n")
    assert lines[:3] == ["SalesTracker report", "Period: 01.01.2024 00:00 - 31.01.2024 23:59", ""]
    assert lines[3:6] == ["INCOME", "Sum;Average;Count;Median;90th percentile", "300.00;150.00;2;150.00;190.00"]
    assert lines[7:10] == ["EXPENSES", "Sum;Average;Count;Median;90th percentile", "0.00;0.00;0;0.00;0.00"]
    assert lines[11] == "TRANSACTIONS"
    assert lines[13] == "7;Income;200.00;15.01.2024 08:30;bonus;;15.01.2024 08:30;15.01.2024 08:30"
    # Separators inside values are quoted
    assert lines[14] == '3;Expense;0.00;02.01.2024 00:00;;"a;b";02.01.2024 00:00;02.01.2024 00:00'


def test_report_filename():
    assert report_filename(ts("2024-01-01T00:00:00"), ts("2024-01-31T23:59:59")) == (
        "sales_tracker_2024-01-01_2024-01-31.csv"
    )
