import math
import re
import sys
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

# Day Type Configuration
DAY_TYPES = {
    'full': {
        'label': 'Full Day',
        'target_minutes': 8 * 60 + 15,       # 8h 15m
        'early_leave_minutes': 7 * 60,       # 7h 00m
    },
    'half': {
        'label': 'Half Day',
        'target_minutes': 4 * 60 + 30,       # 4h 30m
        'early_leave_minutes': None,
    }
}

DEFAULT_DAY_TYPE = 'full'

TIME_FORMAT_PATTERN = re.compile(r'^([0-9]{1,2}):([0-9]{2}):([0-9]{2})\s*(AM|PM)$', re.IGNORECASE)


@dataclass(frozen=True)
class Break:
    start_time: str
    end_time: str
    duration_minutes: float


@dataclass(frozen=True)
class CalculationResult:
    day_type: str
    valid_entries: List[str]
    invalid_entries: List[str]
    total_worked_minutes: float
    total_break_minutes: float
    breaks: List[Break]
    target_minutes: float
    remaining_minutes: float
    is_complete: bool
    is_currently_in: bool
    completion_time: Optional[datetime] = None
    half_type: Optional[str] = None
    early_leave_remaining_minutes: Optional[float] = None
    can_leave_now: Optional[bool] = None
    early_leave_time: Optional[datetime] = None


# ------------------------ Time Utilities ------------------------
def parse_time(time_str, today=None):
    """
    Convert a punch line (H:MM:SS AM/PM) to a datetime on today's date.
    Returns None for anything that does not match or is out of range.
    """
    match = TIME_FORMAT_PATTERN.match(time_str.strip())
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3))
    period = match.group(4).upper()

    if hours < 1 or hours > 12 or minutes > 59 or seconds > 59:
        return None

    if period == 'PM' and hours != 12:
        hours += 12
    if period == 'AM' and hours == 12:
        hours = 0

    if today is None:
        today = date.today()
    return datetime(today.year, today.month, today.day, hours, minutes, seconds)


def format_duration(total_minutes):
    """Render minutes as 'Xh Ym' using the magnitude only"""
    magnitude = abs(total_minutes)
    hours = math.floor(magnitude / 60)
    # Half-up to match JS Math.round; round() would round half to even
    minutes = math.floor(magnitude % 60 + 0.5)
    return f"{hours}h {minutes}m"


def format_time(moment):
    """12-hour clock time, e.g. 1:00:00 PM"""
    hour = moment.hour % 12 or 12
    period = 'AM' if moment.hour < 12 else 'PM'
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {period}"


def minutes_between(start, end):
    return (end - start).total_seconds() / 60


def parse_punch_log(punch_log, today=None):
    """
    Split a punch log into lines and parse each one.
    Blank lines are skipped. Returns (valid_entries, invalid_entries, timestamps),
    each in input order.
    """
    valid_entries = []
    invalid_entries = []
    timestamps = []

    for line in punch_log.split('\n'):
        line = line.strip()
        if not line:
            continue

        parsed = parse_time(line, today)
        if parsed:
            valid_entries.append(line)
            timestamps.append(parsed)
        else:
            invalid_entries.append(line)

    return valid_entries, invalid_entries, timestamps


def get_day_config(day_type):
    if day_type not in DAY_TYPES:
        raise ValueError(f"Unknown day type: '{day_type}'. Expected one of: {', '.join(DAY_TYPES)}")
    return DAY_TYPES[day_type]


class PunchCalculator:
    def __init__(self, day_type=DEFAULT_DAY_TYPE):
        self.day_type = day_type
        self.config = get_day_config(day_type)

    # ------------------------ Interval Accounting ------------------------
    def calculate_worked_minutes(self, timestamps, current_time):
        """
        Sum (out - in) for every complete pair of punches.
        Punches are in order: in, out, in, out, ...
        A trailing unpaired clock-in counts up to current_time.
        Negative intervals (out before in) are kept as-is.
        """
        total_minutes = 0
        for i in range(0, len(timestamps) - 1, 2):
            entry = timestamps[i]
            exit_time = timestamps[i + 1]
            total_minutes += minutes_between(entry, exit_time)

        if len(timestamps) % 2 == 1:
            total_minutes += minutes_between(timestamps[-1], current_time)

        return total_minutes

    def calculate_breaks(self, timestamps):
        """Gaps between each clock-out and the following clock-in"""
        breaks = []
        for i in range(1, len(timestamps) - 1, 2):
            exit_time = timestamps[i]
            next_entry = timestamps[i + 1]
            breaks.append(Break(
                start_time=format_time(exit_time),
                end_time=format_time(next_entry),
                duration_minutes=minutes_between(exit_time, next_entry)
            ))
        return breaks

    def classify_half(self, timestamps):
        if self.config['early_leave_minutes'] is not None or not timestamps:
            return None
        return 'first' if timestamps[0].hour < 12 else 'second'

    def calculate(self, punch_log, current_time=None):
        """
        Compute the full result for a punch log against this day type.
        current_time is the clock sample used for an open clock-in.
        """
        if current_time is None:
            current_time = datetime.now()

        valid_entries, invalid_entries, timestamps = parse_punch_log(punch_log, current_time.date())

        total_worked = self.calculate_worked_minutes(timestamps, current_time)
        breaks = self.calculate_breaks(timestamps)
        total_break = sum(b.duration_minutes for b in breaks)

        is_currently_in = len(timestamps) % 2 == 1
        target = self.config['target_minutes']
        remaining = target - total_worked
        is_complete = remaining <= 0

        completion_time = None
        if not is_complete and is_currently_in:
            completion_time = current_time + timedelta(minutes=remaining)

        early_remaining = None
        can_leave_now = None
        early_leave_time = None
        early_threshold = self.config['early_leave_minutes']
        if early_threshold is not None:
            early_remaining = early_threshold - total_worked
            can_leave_now = early_remaining <= 0
            if not can_leave_now and is_currently_in:
                early_leave_time = current_time + timedelta(minutes=early_remaining)

        return CalculationResult(
            day_type=self.day_type,
            valid_entries=valid_entries,
            invalid_entries=invalid_entries,
            total_worked_minutes=total_worked,
            total_break_minutes=total_break,
            breaks=breaks,
            target_minutes=target,
            remaining_minutes=remaining,
            is_complete=is_complete,
            is_currently_in=is_currently_in,
            completion_time=completion_time,
            half_type=self.classify_half(timestamps),
            early_leave_remaining_minutes=early_remaining,
            can_leave_now=can_leave_now,
            early_leave_time=early_leave_time
        )

    # ------------------------ Reporting ------------------------
    def print_report(self, result, current_time=None):
        """Print the calculation result in a formatted block"""
        print("\n" + "=" * 60)
        print(f"WORK HOURS: {self.config['label']}")
        if current_time is not None:
            print(f"Current Time: {format_time(current_time)}")
        print("=" * 60)

        print(f"\nTotal Worked: {format_duration(result.total_worked_minutes)}")
        if result.is_currently_in:
            print("  Currently clocked in")

        if result.is_complete:
            print(f"Overtime:     +{format_duration(result.remaining_minutes)}")
        else:
            print(f"Remaining:    {format_duration(result.remaining_minutes)}")
        print(f"  Target: {format_duration(result.target_minutes)}")

        if result.is_complete:
            print("Status:       Target reached")
        elif result.completion_time:
            print(f"Est. Completion: {format_time(result.completion_time)}")
        else:
            print("Est. Completion: Clock in to estimate")

        if result.half_type:
            print(f"Half: {result.half_type.capitalize()} half")

        if result.early_leave_remaining_minutes is not None:
            print("-" * 60)
            if result.can_leave_now:
                print("Early Leave:  You can leave now")
            else:
                print(f"Early Leave:  {format_duration(result.early_leave_remaining_minutes)} to go")
                if result.early_leave_time:
                    print(f"  Earliest leave at: {format_time(result.early_leave_time)}")
                else:
                    print("  Clock in to estimate")

        print("-" * 60)
        print(f"Break Time:   {format_duration(result.total_break_minutes)}")
        if result.breaks:
            for brk in result.breaks:
                print(f"  {brk.start_time} -> {brk.end_time}  {format_duration(brk.duration_minutes)}")
        else:
            print("  No breaks recorded")

        print("-" * 60)
        print(f"Valid entries: {len(result.valid_entries)}")
        if result.invalid_entries:
            print(f"Ignored entries: {', '.join(result.invalid_entries)}")
        print("=" * 60)

    def generate_excel(self, result, output_filepath):
        """Generate Excel file with the calculation summary and break list"""
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Summary"

        # Define styles
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        data_alignment = Alignment(horizontal="left", vertical="center")

        border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        def write_header(sheet, headers):
            for col, header in enumerate(headers, 1):
                cell = sheet.cell(row=1, column=col)
                cell.value = header
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = header_alignment
                cell.border = border
            sheet.freeze_panes = 'A2'

        write_header(ws, ["Item", "Value"])
        ws.column_dimensions['A'].width = 22
        ws.column_dimensions['B'].width = 40

        remaining_label = "Overtime" if result.is_complete else "Remaining"
        rows = [
            ("Day Type", self.config['label']),
            ("Target", format_duration(result.target_minutes)),
            ("Total Worked", format_duration(result.total_worked_minutes)),
            ("Currently Clocked In", "Yes" if result.is_currently_in else "No"),
            (remaining_label, format_duration(result.remaining_minutes)),
            ("Est. Completion", format_time(result.completion_time) if result.completion_time else ""),
            ("Total Break", format_duration(result.total_break_minutes)),
        ]
        if result.half_type:
            rows.append(("Half", result.half_type))
        if result.early_leave_remaining_minutes is not None:
            rows.append(("Can Leave Now", "Yes" if result.can_leave_now else "No"))
            rows.append(("Early Leave At", format_time(result.early_leave_time) if result.early_leave_time else ""))
        rows.append(("Valid Entries", len(result.valid_entries)))
        rows.append(("Ignored Entries", ", ".join(result.invalid_entries)))

        for row, (label, value) in enumerate(rows, 2):
            ws.cell(row=row, column=1).value = label
            ws.cell(row=row, column=2).value = value
            for col in range(1, 3):
                cell = ws.cell(row=row, column=col)
                cell.border = border
                cell.alignment = data_alignment

        ws_breaks = wb.create_sheet("Breaks")
        write_header(ws_breaks, ["Start", "End", "Duration", "Minutes"])
        for col, width in zip("ABCD", (14, 14, 12, 12)):
            ws_breaks.column_dimensions[col].width = width

        for row, brk in enumerate(result.breaks, 2):
            ws_breaks.cell(row=row, column=1).value = brk.start_time
            ws_breaks.cell(row=row, column=2).value = brk.end_time
            ws_breaks.cell(row=row, column=3).value = format_duration(brk.duration_minutes)
            ws_breaks.cell(row=row, column=4).value = round(brk.duration_minutes, 2)
            ws_breaks.cell(row=row, column=4).number_format = '0.00'
            for col in range(1, 5):
                ws_breaks.cell(row=row, column=col).border = border

        wb.save(output_filepath)
        print(f"Excel file generated: {output_filepath}")


USAGE = """Usage: punch_calculator.py <punch_log_file|-> [options]
       punch_calculator.py --from-excel <file.xlsx> [--column <name>] [options]
       punch_calculator.py --interactive [--day-type full|half]

Options:
  --day-type full|half   Target selection (default: full)
  --now 'H:MM:SS AM'     Override the current time
  --excel <out.xlsx>     Also write an Excel summary
Example: punch_calculator.py punches.txt --day-type half --now '1:30:00 PM'"""


def parse_args(argv):
    """Hand-parse command line options into a dict"""
    options = {
        'log_file': None,
        'day_type': DEFAULT_DAY_TYPE,
        'now': None,
        'excel': None,
        'from_excel': None,
        'column': None,
        'interactive': False,
    }
    value_flags = {
        '--day-type': 'day_type',
        '--now': 'now',
        '--excel': 'excel',
        '--from-excel': 'from_excel',
        '--column': 'column',
    }

    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == '--interactive':
            options['interactive'] = True
        elif arg in value_flags:
            if i + 1 >= len(argv):
                raise ValueError(f"Missing value for {arg}")
            options[value_flags[arg]] = argv[i + 1]
            i += 1
        elif arg.startswith('--'):
            raise ValueError(f"Unknown option: {arg}")
        elif options['log_file'] is None:
            options['log_file'] = arg
        else:
            raise ValueError(f"Unexpected argument: {arg}")
        i += 1

    if not options['interactive'] and not options['log_file'] and not options['from_excel']:
        raise ValueError("No punch log given")
    return options


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    try:
        options = parse_args(argv)
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        sys.exit(1)

    try:
        if options['interactive']:
            from punch_session import PunchSession
            PunchSession(options['day_type']).run()
            return

        calculator = PunchCalculator(options['day_type'])

        current_time = datetime.now()
        if options['now']:
            current_time = parse_time(options['now'])
            if current_time is None:
                raise ValueError(f"Invalid --now value: '{options['now']}'. Expected 'H:MM:SS AM'")

        if options['from_excel']:
            from punch_import import read_punch_log
            kwargs = {'column': options['column']} if options['column'] else {}
            punch_log = read_punch_log(options['from_excel'], **kwargs)
        elif options['log_file'] == '-':
            punch_log = sys.stdin.read()
        else:
            with open(options['log_file'], 'r', encoding='utf-8') as f:
                punch_log = f.read()

        result = calculator.calculate(punch_log, current_time)
        calculator.print_report(result, current_time)

        if options['excel']:
            calculator.generate_excel(result, options['excel'])
    except (ValueError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
