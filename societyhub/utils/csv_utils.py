import csv
from io import StringIO
from typing import Iterable, List, Sequence


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def defaulters_to_csv(flat_bills: List) -> str:
    headers = ["flat_number", "status", "adjusted_amount", "total_paid", "balance_due", "residents", "phones"]
    rows = []
    for flat_bill in flat_bills:
        residents = flat_bill.flat.residents if flat_bill.flat else []
        rows.append(
            [
                flat_bill.flat_number,
                flat_bill.status,
                str(flat_bill.adjusted_amount),
                str(flat_bill.total_paid),
                str(flat_bill.balance_due),
                "; ".join(resident.name for resident in residents),
                "; ".join(resident.phone or "" for resident in residents),
            ]
        )
    return rows_to_csv(headers, rows)
