"""
Unit tests for the Punch Calculator
"""
import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import date, datetime, time

import openpyxl

from punch_calculator import (
    PunchCalculator, CalculationResult, parse_time, parse_punch_log, format_duration, format_time,
    get_day_config, parse_args, main, DAY_TYPES
)
from punch_import import read_punch_log
from punch_session import PunchSession

TODAY = date(2026, 10, 19)

SCENARIO_A = "10:38:59 AM\n1:00:00 PM\n1:21:33 PM\n6:00:00 PM"


def at(hour, minute=0, second=0):
    return datetime(TODAY.year, TODAY.month, TODAY.day, hour, minute, second)


class TestParseTime(unittest.TestCase):
    """Test cases for punch line parsing"""

    def test_parse_morning_time(self):
        """Test a plain AM time"""
        self.assertEqual(parse_time("10:38:59 AM", TODAY), at(10, 38, 59))

    def test_parse_pm_adds_twelve(self):
        """Test PM hours 1-11 shift by 12"""
        self.assertEqual(parse_time("1:05:09 PM", TODAY), at(13, 5, 9))

    def test_parse_midnight_and_noon(self):
        """Test 12 AM maps to 0 and 12 PM stays 12"""
        self.assertEqual(parse_time("12:00:00 AM", TODAY), at(0))
        self.assertEqual(parse_time("12:30:00 PM", TODAY), at(12, 30))

    def test_parse_case_and_spacing(self):
        """Test lowercase marker, no space before it, and surrounding whitespace"""
        self.assertEqual(parse_time("1:00:00pm", TODAY), at(13))
        self.assertEqual(parse_time("  3:00:00 am  ", TODAY), at(3))
        self.assertEqual(parse_time("09:15:00 AM", TODAY), at(9, 15))

    def test_parse_boundaries_accepted(self):
        """Test the edges of every field range"""
        self.assertEqual(parse_time("1:00:00 AM", TODAY), at(1))
        self.assertEqual(parse_time("11:59:59 PM", TODAY), at(23, 59, 59))

    def test_parse_rejects_out_of_range(self):
        """Test hour 0, hour 13, minute 60 and second 60 are rejected"""
        for line in ["0:00:00 AM", "13:00:00 PM", "1:60:00 AM", "1:00:60 AM"]:
            self.assertIsNone(parse_time(line, TODAY), line)

    def test_parse_rejects_malformed(self):
        """Test missing marker, extra characters and short fields"""
        for line in ["1:00:00", "1:00:00 AM x", "MISSING", "", "1:0:00 AM", "100:00:00 AM", "1:00 PM"]:
            self.assertIsNone(parse_time(line, TODAY), line)

    def test_parse_rejects_non_ascii_digits(self):
        """Test Arabic-Indic and fullwidth digits are not accepted"""
        for line in ["٩:٠٠:٠٠ AM", "９:00:00 AM", "9:０0:00 AM", "9:00:0٠ PM"]:
            self.assertIsNone(parse_time(line, TODAY), line)

        valid, invalid, _ = parse_punch_log("９:00:00 AM\n9:00:00 AM", TODAY)
        self.assertEqual(valid, ["9:00:00 AM"])
        self.assertEqual(invalid, ["９:00:00 AM"])

    def test_parse_defaults_to_today(self):
        """Test the date anchor comes from the local clock"""
        self.assertEqual(parse_time("9:00:00 AM").date(), date.today())


class TestParsePunchLog(unittest.TestCase):
    """Test cases for splitting a log into valid and invalid entries"""

    def test_blank_lines_skipped(self):
        """Test blank and whitespace-only lines are not counted as invalid"""
        valid, invalid, timestamps = parse_punch_log("\n9:00:00 AM\n   \n\n5:00:00 PM\n", TODAY)
        self.assertEqual(valid, ["9:00:00 AM", "5:00:00 PM"])
        self.assertEqual(invalid, [])
        self.assertEqual(timestamps, [at(9), at(17)])

    def test_partition_preserves_order(self):
        """Test both lists keep the original line order"""
        log = "bad one\n9:00:00 AM\n13:00:00 PM\n12:00:00 PM\nMISSING"
        valid, invalid, _ = parse_punch_log(log, TODAY)
        self.assertEqual(valid, ["9:00:00 AM", "12:00:00 PM"])
        self.assertEqual(invalid, ["bad one", "13:00:00 PM", "MISSING"])

    def test_invalid_entries_are_trimmed_lines(self):
        """Test invalid entries are echoed as the trimmed line"""
        _, invalid, _ = parse_punch_log("   not a time  ", TODAY)
        self.assertEqual(invalid, ["not a time"])


class TestFormatting(unittest.TestCase):
    """Test duration and clock formatting"""

    def test_format_duration(self):
        self.assertEqual(format_duration(125), "2h 5m")

    def test_format_duration_uses_magnitude(self):
        self.assertEqual(format_duration(-125), "2h 5m")

    def test_format_duration_rounds_half_up(self):
        """Test 30 seconds rounds up to the next minute"""
        self.assertEqual(format_duration(2.5), "0h 3m")
        self.assertEqual(format_duration(21.55), "0h 22m")
        self.assertEqual(format_duration(0.5), "0h 1m")

    def test_format_duration_zero(self):
        self.assertEqual(format_duration(0), "0h 0m")

    def test_format_time(self):
        self.assertEqual(format_time(at(13, 0, 0)), "1:00:00 PM")
        self.assertEqual(format_time(at(0, 5, 9)), "12:05:09 AM")
        self.assertEqual(format_time(at(12, 0, 0)), "12:00:00 PM")
        self.assertEqual(format_time(at(9, 30, 0)), "9:30:00 AM")


class TestPunchCalculator(unittest.TestCase):
    """Test cases for the time accounting"""

    def setUp(self):
        """Set up test fixtures"""
        self.calculator = PunchCalculator('full')
        self.half_calculator = PunchCalculator('half')

    # ==================== Scenario Tests ====================
    def test_scenario_a_complete_pairs(self):
        """Test two complete pairs with one break"""
        result = self.calculator.calculate(SCENARIO_A, at(19))

        self.assertAlmostEqual(result.total_worked_minutes, 419 + 28 / 60, places=6)
        self.assertEqual(format_duration(result.total_worked_minutes), "6h 59m")

        self.assertEqual(len(result.breaks), 1)
        brk = result.breaks[0]
        self.assertEqual(brk.start_time, "1:00:00 PM")
        self.assertEqual(brk.end_time, "1:21:33 PM")
        self.assertAlmostEqual(brk.duration_minutes, 21 + 33 / 60, places=6)
        self.assertAlmostEqual(result.total_break_minutes, 21 + 33 / 60, places=6)

        self.assertFalse(result.is_complete)
        self.assertFalse(result.is_currently_in)
        self.assertEqual(format_duration(result.remaining_minutes), "1h 16m")
        self.assertIsNone(result.completion_time)

    def test_scenario_a_early_leave(self):
        """Test early leave is not yet reached and has no projection when clocked out"""
        result = self.calculator.calculate(SCENARIO_A, at(19))
        self.assertAlmostEqual(result.early_leave_remaining_minutes, 420 - (419 + 28 / 60), places=6)
        self.assertFalse(result.can_leave_now)
        self.assertIsNone(result.early_leave_time)
        self.assertIsNone(result.half_type)

    def test_scenario_b_invalid_line_ignored(self):
        """Test an invalid line does not change the numbers"""
        result_a = self.calculator.calculate(SCENARIO_A, at(19))
        result_b = self.calculator.calculate(SCENARIO_A + "\nMISSING", at(19))

        self.assertEqual(len(result_b.valid_entries), 4)
        self.assertEqual(result_b.invalid_entries, ["MISSING"])
        self.assertEqual(result_b.total_worked_minutes, result_a.total_worked_minutes)
        self.assertEqual(result_b.total_break_minutes, result_a.total_break_minutes)
        self.assertEqual(result_b.breaks, result_a.breaks)
        self.assertEqual(result_b.remaining_minutes, result_a.remaining_minutes)

    def test_scenario_c_currently_in(self):
        """Test a single open clock-in projects completion from now"""
        result = self.calculator.calculate("9:00:00 AM", at(9, 30))

        self.assertTrue(result.is_currently_in)
        self.assertEqual(result.total_worked_minutes, 30)
        self.assertEqual(result.remaining_minutes, 7 * 60 + 45)
        self.assertEqual(format_duration(result.remaining_minutes), "7h 45m")
        self.assertEqual(result.completion_time, at(17, 15))
        self.assertEqual(result.early_leave_time, at(16, 0))
        self.assertEqual(result.breaks, [])

    def test_scenario_d_half_day_second_half(self):
        """Test half day classified from the first punch after noon"""
        result = self.half_calculator.calculate("1:00:00 PM", at(14))

        self.assertEqual(result.half_type, "second")
        self.assertEqual(result.target_minutes, 4 * 60 + 30)
        self.assertEqual(result.remaining_minutes, 270 - 60)
        self.assertEqual(result.completion_time, at(17, 30))
        self.assertIsNone(result.early_leave_remaining_minutes)
        self.assertIsNone(result.can_leave_now)
        self.assertIsNone(result.early_leave_time)

    def test_half_day_first_half(self):
        """Test half day classified from a morning first punch"""
        result = self.half_calculator.calculate("8:00:00 AM\n12:30:00 PM\n2:00:00 PM", at(15))
        self.assertEqual(result.half_type, "first")

    def test_half_day_no_punches(self):
        """Test half type is undefined without a valid punch"""
        result = self.half_calculator.calculate("MISSING", at(15))
        self.assertIsNone(result.half_type)

    def test_scenario_e_exactly_at_target(self):
        """Test worked time equal to target is complete"""
        result = self.calculator.calculate("9:00:00 AM\n5:15:00 PM", at(18))
        self.assertTrue(result.is_complete)
        self.assertEqual(result.remaining_minutes, 0)
        self.assertEqual(format_duration(result.remaining_minutes), "0h 0m")
        self.assertIsNone(result.completion_time)

    def test_scenario_e_currently_in_at_target(self):
        """Test no completion projection once complete even while clocked in"""
        result = self.calculator.calculate("9:00:00 AM", at(17, 15))
        self.assertTrue(result.is_currently_in)
        self.assertTrue(result.is_complete)
        self.assertIsNone(result.completion_time)
        self.assertTrue(result.can_leave_now)
        self.assertIsNone(result.early_leave_time)

    def test_overtime_is_negative_remaining(self):
        """Test remaining goes negative once the target is exceeded"""
        result = self.calculator.calculate("8:00:00 AM\n6:00:00 PM", at(19))
        self.assertTrue(result.is_complete)
        self.assertEqual(result.remaining_minutes, -105)
        self.assertEqual(format_duration(result.remaining_minutes), "1h 45m")

    # ==================== Pairing Tests ====================
    def test_even_count_not_currently_in(self):
        """Test even counts produce no projections"""
        result = self.calculator.calculate("9:00:00 AM\n10:00:00 AM", at(11))
        self.assertFalse(result.is_currently_in)
        self.assertIsNone(result.completion_time)
        self.assertIsNone(result.early_leave_time)

    def test_odd_count_adds_open_interval(self):
        """Test worked time includes now minus the last clock-in"""
        result = self.calculator.calculate("9:00:00 AM\n10:00:00 AM\n10:30:00 AM", at(11, 15))
        self.assertTrue(result.is_currently_in)
        self.assertEqual(result.total_worked_minutes, 60 + 45)
        self.assertEqual(result.total_break_minutes, 30)

    def test_break_count(self):
        """Test break count follows the number of valid punches"""
        punches = ["8:00:00 AM", "9:00:00 AM", "9:10:00 AM", "10:00:00 AM",
                   "10:20:00 AM", "11:00:00 AM", "11:05:00 AM"]
        for n in range(len(punches) + 1):
            result = self.calculator.calculate("\n".join(punches[:n]), at(12))
            expected = max(0, (n - 1) // 2) if n >= 2 else 0
            self.assertEqual(len(result.breaks), expected, n)

    def test_input_order_not_sorted(self):
        """Test out-of-order punches give a negative interval"""
        result = self.calculator.calculate("5:00:00 PM\n9:00:00 AM", at(18))
        self.assertEqual(result.total_worked_minutes, -480)
        self.assertFalse(result.is_complete)

    def test_no_valid_entries(self):
        """Test empty input yields zero work and no projections"""
        result = self.calculator.calculate("", at(12))
        self.assertEqual(result.valid_entries, [])
        self.assertEqual(result.total_worked_minutes, 0)
        self.assertEqual(result.total_break_minutes, 0)
        self.assertEqual(result.breaks, [])
        self.assertFalse(result.is_currently_in)
        self.assertIsNone(result.completion_time)
        self.assertEqual(result.remaining_minutes, DAY_TYPES['full']['target_minutes'])

    def test_result_requires_target(self):
        """Test a result cannot be built without a target"""
        with self.assertRaises(TypeError):
            CalculationResult(
                day_type='full', valid_entries=[], invalid_entries=[],
                total_worked_minutes=0, total_break_minutes=0, breaks=[],
                remaining_minutes=495, is_complete=False, is_currently_in=False
            )

    def test_result_carries_configured_target(self):
        self.assertEqual(self.calculator.calculate("", at(12)).target_minutes, 495)
        self.assertEqual(self.half_calculator.calculate("", at(12)).target_minutes, 270)

    def test_unknown_day_type(self):
        """Test an unknown day type raises ValueError"""
        with self.assertRaises(ValueError):
            PunchCalculator('weekend')
        with self.assertRaises(ValueError):
            get_day_config('')

    # ==================== Report Tests ====================
    def test_print_report_clocked_in(self):
        """Test the report lists completion and early leave projections"""
        result = self.calculator.calculate("9:00:00 AM\nMISSING", at(9, 30))
        out = io.StringIO()
        with redirect_stdout(out):
            self.calculator.print_report(result, at(9, 30))
        text = out.getvalue()
        self.assertIn("Total Worked: 0h 30m", text)
        self.assertIn("Currently clocked in", text)
        self.assertIn("Est. Completion: 5:15:00 PM", text)
        self.assertIn("Earliest leave at: 4:00:00 PM", text)
        self.assertIn("Ignored entries: MISSING", text)

    def test_print_report_overtime(self):
        """Test the report labels exceeded targets as overtime"""
        result = self.calculator.calculate("8:00:00 AM\n6:00:00 PM", at(19))
        out = io.StringIO()
        with redirect_stdout(out):
            self.calculator.print_report(result)
        text = out.getvalue()
        self.assertIn("Overtime:     +1h 45m", text)
        self.assertIn("You can leave now", text)
        self.assertIn("No breaks recorded", text)

    def test_print_report_clocked_out_short_of_early_leave(self):
        """Test early leave asks to clock in when clocked out below the threshold"""
        result = self.calculator.calculate(SCENARIO_A, at(19))
        out = io.StringIO()
        with redirect_stdout(out):
            self.calculator.print_report(result)
        text = out.getvalue()
        self.assertIn("Est. Completion: Clock in to estimate", text)
        self.assertIn("Early Leave:  0h 1m to go\n  Clock in to estimate", text)
        self.assertNotIn("Earliest leave at", text)
        self.assertIn("1:00:00 PM -> 1:21:33 PM  0h 22m", text)

    def test_print_report_half_day(self):
        """Test the half day report shows the half and no early leave"""
        result = self.half_calculator.calculate("1:00:00 PM", at(14))
        out = io.StringIO()
        with redirect_stdout(out):
            self.half_calculator.print_report(result, at(14))
        text = out.getvalue()
        self.assertIn("WORK HOURS: Half Day", text)
        self.assertIn("Half: Second half", text)
        self.assertIn("Target: 4h 30m", text)
        self.assertIn("Est. Completion: 5:30:00 PM", text)
        self.assertNotIn("Early Leave", text)


class TestExcelOutput(unittest.TestCase):
    """Test the Excel summary"""

    def test_excel_file_generated(self):
        """Test that the Excel file holds the summary and breaks"""
        calculator = PunchCalculator('full')
        result = calculator.calculate(SCENARIO_A + "\nMISSING", at(19))

        with tempfile.TemporaryDirectory() as tmp:
            output_file = os.path.join(tmp, 'summary.xlsx')
            with redirect_stdout(io.StringIO()):
                calculator.generate_excel(result, output_file)
            self.assertTrue(os.path.exists(output_file))

            wb = openpyxl.load_workbook(output_file)
            self.assertEqual(wb.sheetnames, ["Summary", "Breaks"])

            summary = {row[0]: row[1] for row in wb["Summary"].iter_rows(min_row=2, values_only=True)}
            self.assertEqual(summary["Total Worked"], "6h 59m")
            self.assertEqual(summary["Remaining"], "1h 16m")
            self.assertEqual(summary["Valid Entries"], 4)
            self.assertEqual(summary["Ignored Entries"], "MISSING")

            breaks = list(wb["Breaks"].iter_rows(min_row=2, values_only=True))
            self.assertEqual(len(breaks), 1)
            self.assertEqual(breaks[0][:3], ("1:00:00 PM", "1:21:33 PM", "0h 22m"))


class TestPunchImport(unittest.TestCase):
    """Test reading punch logs from spreadsheet exports"""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_read_xlsx_column(self):
        path = os.path.join(self.tmp.name, 'punches.xlsx')
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["Employee", "Punch Time"])
        for value in ["10:38:59 AM", "1:00:00 PM", None, "MISSING"]:
            ws.append(["E1", value])
        wb.save(path)

        with redirect_stdout(io.StringIO()):
            text = read_punch_log(path)
        self.assertEqual(text, "10:38:59 AM\n1:00:00 PM\nMISSING")

    def test_read_xlsx_time_cells(self):
        """Test time-formatted cells are read as 12-hour punch lines"""
        path = os.path.join(self.tmp.name, 'punches.xlsx')
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["Punch Time"])
        for value in [time(9, 0, 0), time(13, 0, 0), time(13, 21, 33), None]:
            ws.append([value])
        wb.save(path)

        with redirect_stdout(io.StringIO()):
            text = read_punch_log(path)
        self.assertEqual(text, "9:00:00 AM\n1:00:00 PM\n1:21:33 PM")

        result = PunchCalculator('full').calculate(text, at(14))
        self.assertEqual(len(result.valid_entries), 3)
        self.assertEqual(result.invalid_entries, [])
        self.assertAlmostEqual(result.total_worked_minutes, 240 + 38 + 27 / 60, places=6)

    def test_read_xlsx_datetime_cells(self):
        """Test date-time cells keep only their clock time"""
        path = os.path.join(self.tmp.name, 'punches.xlsx')
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["Punch Time"])
        ws.append([datetime(2026, 10, 19, 10, 38, 59)])
        ws.append([datetime(2026, 10, 19, 18, 0, 0)])
        wb.save(path)

        with redirect_stdout(io.StringIO()):
            text = read_punch_log(path)
        self.assertEqual(text, "10:38:59 AM\n6:00:00 PM")

    def test_read_csv_named_column(self):
        path = os.path.join(self.tmp.name, 'punches.csv')
        with open(path, 'w', encoding='utf-8') as f:
            f.write("In/Out\n9:00:00 AM\n5:15:00 PM\n")

        with redirect_stdout(io.StringIO()):
            text = read_punch_log(path, column="In/Out")
        result = PunchCalculator('full').calculate(text, at(18))
        self.assertTrue(result.is_complete)

    def test_missing_column(self):
        path = os.path.join(self.tmp.name, 'punches.csv')
        with open(path, 'w', encoding='utf-8') as f:
            f.write("Time\n9:00:00 AM\n")

        with self.assertRaises(ValueError):
            read_punch_log(path)


class TestPunchSession(unittest.TestCase):
    """Test the interactive session"""

    def setUp(self):
        self.times = iter([at(9, 0), at(9, 30), at(9, 31), at(9, 45), at(10, 0), at(10, 15)])
        self.session = PunchSession('full', clock=lambda: next(self.times))

    def test_tick_does_not_recalculate(self):
        """Test the result stays frozen until the next calculate"""
        with redirect_stdout(io.StringIO()):
            self.session.handle("9:00:00 AM")
            self.session.handle(":calc")
        self.assertEqual(self.session.result.total_worked_minutes, 31)

        self.session.tick()
        self.session.tick()
        self.assertEqual(self.session.current_time, at(10, 0))
        self.assertEqual(self.session.result.total_worked_minutes, 31)

        with redirect_stdout(io.StringIO()):
            self.session.handle(":calc")
        self.assertEqual(self.session.result.total_worked_minutes, 75)

    def test_day_type_switch_and_clear(self):
        with redirect_stdout(io.StringIO()):
            self.session.handle("1:00:00 PM")
            self.session.handle(":half")
            self.session.handle(":calc")
        self.assertEqual(self.session.result.day_type, 'half')
        self.assertEqual(self.session.result.half_type, 'second')

        with redirect_stdout(io.StringIO()):
            self.session.handle(":clear")
        self.assertEqual(self.session.punch_log, '')
        self.assertIsNone(self.session.result)

    def test_run_until_quit(self):
        """Test run reads lines until :quit"""
        lines = iter(["10:38:59 AM", "1:00:00 PM", "MISSING", ":calc", ":quit", "never read"])
        out = io.StringIO()
        with redirect_stdout(out):
            self.session.run(input_func=lambda: next(lines))
        self.assertEqual(self.session.result.invalid_entries, ["MISSING"])
        self.assertIn("Ignored entries: MISSING", out.getvalue())
        self.assertEqual(next(lines), "never read")

    def test_run_stops_on_eof(self):
        def closed_input():
            raise EOFError

        with redirect_stdout(io.StringIO()):
            self.session.run(input_func=closed_input)
        self.assertIsNone(self.session.result)


class TestCommandLine(unittest.TestCase):
    """Test argument parsing and the main entry point"""

    def test_parse_args(self):
        options = parse_args(["log.txt", "--day-type", "half", "--now", "1:30:00 PM"])
        self.assertEqual(options['log_file'], "log.txt")
        self.assertEqual(options['day_type'], "half")
        self.assertEqual(options['now'], "1:30:00 PM")
        self.assertFalse(options['interactive'])

    def test_parse_args_errors(self):
        for argv in [[], ["--bogus", "x.txt"], ["x.txt", "--now"], ["a.txt", "b.txt"]]:
            with self.assertRaises(ValueError):
                parse_args(argv)

    def test_main_prints_report(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'punches.txt')
            with open(path, 'w', encoding='utf-8') as f:
                f.write("9:00:00 AM\n")

            out = io.StringIO()
            with redirect_stdout(out):
                main([path, "--now", "9:30:00 AM"])
        self.assertIn("Est. Completion: 5:15:00 PM", out.getvalue())

    def test_main_exits_on_bad_input(self):
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main([])
        self.assertEqual(ctx.exception.code, 1)

        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["does-not-exist.txt"])
        self.assertEqual(ctx.exception.code, 1)

        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["x.txt", "--now", "25:00"])
        self.assertEqual(ctx.exception.code, 1)


if __name__ == '__main__':
    unittest.main(verbosity=2)
