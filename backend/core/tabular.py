"""
CSV / Excel helpers shared by the product and order import/export endpoints.
"""
import csv
import io
import logging
import re
from datetime import date, datetime

from django.http import HttpResponse
from django.utils.translation import gettext as _
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter

from .exceptions import ValidationFailed

logger = logging.getLogger('backend.core')

CANDIDATE_DELIMITERS = [';', ',', '\t', '|']
CSV_EXTENSIONS = ('.csv',)
EXCEL_EXTENSIONS = ('.xlsx', '.xls')
XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def detect_delimiter(header_line):
    """Pick the candidate delimiter occurring most often in the header line (',' on ties at zero)"""
    best, best_count = ',', 0
    for delimiter in CANDIDATE_DELIMITERS:
        count = header_line.count(delimiter)
        if count > best_count:
            best, best_count = delimiter, count
    return best


def normalize_header(header):
    """'  Customer Name ' -> 'customer_name'; keeps word characters and Arabic letters only"""
    value = re.sub(r'\s+', '_', str(header or '').strip().lower())
    return re.sub(r'[^\w\u0600-\u06FF]', '', value)


def _cell_to_text(value):
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _read_csv(content):
    if isinstance(content, bytes):
        try:
            content = content.decode('utf-8')
        except UnicodeDecodeError:
            raise ValidationFailed(_('The file must be UTF-8 encoded'))
    content = content.lstrip('\ufeff')
    first_line = content.split('\n', 1)[0]
    reader = csv.reader(io.StringIO(content), delimiter=detect_delimiter(first_line))
    return [row for row in reader]


def _read_excel(content):
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.warning(f"Could not open spreadsheet: {str(e)}")
        raise ValidationFailed(_('The spreadsheet could not be read'))
    sheet = workbook.active
    rows = [[_cell_to_text(value) for value in row] for row in sheet.iter_rows(values_only=True)]
    workbook.close()
    return rows


def parse_tabular_file(name, content):
    """
    Parse an uploaded CSV or Excel file into headers and rows.

    Returns {'headers': [...], 'rows': [[...], ...]} where every row has
    exactly len(headers) string cells. Fully blank rows are dropped.
    """
    lower_name = (name or '').lower()
    if lower_name.endswith(CSV_EXTENSIONS):
        raw_rows = _read_csv(content)
    elif lower_name.endswith(EXCEL_EXTENSIONS):
        raw_rows = _read_excel(content)
    else:
        raise ValidationFailed(_('Unsupported file type. Upload a .csv or .xlsx file'))

    if len(raw_rows) < 2:
        raise ValidationFailed(_('The file must contain a header row and at least one data row'))

    headers = [str(h).strip() for h in raw_rows[0]]
    width = len(headers)
    rows = []
    for raw in raw_rows[1:]:
        cells = [str(c).strip() if c is not None else '' for c in raw][:width]
        cells += [''] * (width - len(cells))
        if not any(cells):
            continue
        rows.append(cells)
    return {'headers': headers, 'rows': rows}


def build_workbook(title, headers, rows):
    """Single-sheet workbook with a bold filled header row and fitted column widths"""
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]

    header_fill = PatternFill('solid', fgColor='1F4E78')
    header_font = Font(bold=True, color='FFFFFF')
    for col, heading in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col, value=heading)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center')

    widths = [len(str(h)) for h in headers]
    for row_index, row in enumerate(rows, start=2):
        for col, value in enumerate(row, start=1):
            ws.cell(row=row_index, column=col, value=value)
            widths[col - 1] = max(widths[col - 1], len(str(value)) if value is not None else 0)

    for col, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col)].width = min(width + 2, 60)
    return wb


def workbook_response(wb, filename):
    buffer = io.BytesIO()
    wb.save(buffer)
    response = HttpResponse(buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def csv_response(headers, rows, filename):
    """UTF-8 CSV with a BOM (for Excel) and every cell quoted"""
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    response.write('\ufeff')
    writer = csv.writer(response, quoting=csv.QUOTE_ALL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(['' if value is None else value for value in row])
    return response
