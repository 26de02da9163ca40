"""CSV export of the filtered registration set."""

from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional, Sequence

from .schemas import RegistrationOut

BOM = "\ufeff"
MEDIA_TYPE = "text/csv; charset=utf-8"

HEADERS = (
    "Nome",
    "E-mail",
    "Departamento",
    "Familiaridade",
    "Acessibilidade",
    "Detalhes Acessibilidade",
    "Observações",
    "Dia",
    "Data Inscrição",
)

YES, NO = "Sim", "Não"


def quote(value: Optional[str]) -> str:
    """Wrap in double quotes, doubling embedded quotes (RFC 4180)."""
    # csv.writer cannot leave the Sim/Não column unquoted next to QUOTE_ALL fields
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def format_timestamp(value: datetime, tz: tzinfo) -> str:
    """pt-BR style ``dd/mm/yyyy, HH:MM:SS`` in ``tz``; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).strftime("%d/%m/%Y, %H:%M:%S")


def csv_row(r: RegistrationOut, tz: tzinfo) -> str:
    return ",".join([
        quote(r.full_name),
        quote(r.corporate_email),
        quote(r.department),
        quote(r.familiarity),
        YES if r.needs_accessibility else NO,
        quote(r.accessibility_details),
        quote(r.observations),
        quote(r.training_day),
        quote(format_timestamp(r.created_at, tz)),
    ])


def registrations_to_csv(rows: Iterable[RegistrationOut], tz: tzinfo = timezone.utc) -> str:
    lines = [",".join(HEADERS)]
    lines.extend(csv_row(r, tz) for r in rows)
    return "\n".join(lines)


def build_csv_document(rows: Sequence[RegistrationOut], tz: tzinfo = timezone.utc) -> bytes:
    """UTF-8 bytes with a leading BOM so spreadsheet tools pick the encoding."""
    return (BOM + registrations_to_csv(rows, tz)).encode("utf-8")


def export_filename(today: Optional[date] = None) -> str:
    if today is None:
        today = datetime.now(timezone.utc).date()
    return f"inscricoes-treinamento-{today.isoformat()}.csv"
