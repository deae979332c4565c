# uc3m_api/core/constants.py

# --- Remote Timetable Location ---
UC3M_TIMETABLE_DOMAIN = "aplicaciones.uc3m.es"
UC3M_TIMETABLE_PATH = "/horarios-web/publicacion/{year}/porCentroPlanCursoGrupo.tt"
# Name of the IANA zone the university publishes its timetables in
UC3M_TIMEZONE_NAME = "Europe/Madrid"

# --- HTTP Headers ---
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "es-ES,es;q=0.9",
}

# --- iCalendar Output ---
PRODUCT_NAME = "uc3m-timetable.hugmanrique.me"
SPEC_VERSION = "2.0"
CALENDAR_CONTENT_TYPE = "text/calendar"
CALENDAR_CACHE_CONTROL = "public, max-age=3600"

# --- Parsing Constants ---
# CSS selectors for the timetable page. These might need updating if the website changes.
TIMETABLE_SELECTOR = ".timetable > tbody"
# Pages may leave the `tbody` implied, with rows right under the table
TIMETABLE_TABLE_SELECTOR = "table.timetable"
TIME_SELECTOR = ".cabeceraHora"
GROUP_SELECTOR = ".asignaturaGrupo"
SESSION_SELECTOR = ".fechasSesion"
# Cells carrying this class hold at least one session
SESSION_CELL_CLASS = "celdaConSesion"

# Each row of the timetable covers a quarter of an hour
ROW_QUANTUM_MINUTES = 15

# Spanish month abbreviations used in the session date ranges
MONTH_ABBREVIATIONS = {
    "ene": 1,
    "feb": 2,
    "mar": 3,
    "abr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "ago": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dic": 12,
}

# --- Caching ---
# Time-to-live (TTL) in seconds for rendered calendars, matching CALENDAR_CACHE_CONTROL
CALENDAR_CACHE_TTL = 3600
CALENDAR_CACHE_SIZE = 256
