from .schedule_generator import ScheduleGenerator, generate_schedule, split_amount
from .dates import add_months_on_day, format_competencia, month_index
from .ids import installment_id
from .money import to_money, format_brl, parse_brl

__all__ = [
    "ScheduleGenerator", "generate_schedule", "split_amount",
    "add_months_on_day", "format_competencia", "month_index",
    "installment_id", "to_money", "format_brl", "parse_brl",
]
