# File: sales_collector/dashboard/page_selectors.py
# Ant Design (v3) widgets on the Upseller "store sales" analytics page.

DATE_PICKER = ".ant-calendar-picker"
CALENDAR_RANGE_POPUP = ".ant-calendar-range"
CALENDAR_LEFT_PANEL = ".ant-calendar-range-left"
CALENDAR_DAY_CELL = "td.ant-calendar-cell"
CALENDAR_DAY = ".ant-calendar-date"
RANGE_INPUTS = ".ant-calendar-range-picker-input"

PREVIOUS_MONTH_CELL_CLASS = "ant-calendar-last-month-cell"
NEXT_MONTH_CELL_CLASS = "ant-calendar-next-month-cell"

COARSE_THIS_MONTH = "text=Este mês"
COARSE_LAST_30_DAYS = "text=Últimos 30 dias"

GROUP_BY_STORE = "text=Por Loja"
LOADING_SPINNER = ".ant-spin"

DATA_TABLE = "table"
DATA_TABLE_ROWS = "tbody tr"

LOGIN_URL_MARKER = "login"
