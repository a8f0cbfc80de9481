"""
Interactive punch log session.

Holds the pasted punch log, a clock sample and the last result. The clock
sample is refreshed before every command, but the result is only recomputed
on an explicit calculate command, so projections shown stay frozen at the
moment of the last calculation.
"""
from datetime import datetime

from punch_calculator import PunchCalculator, DEFAULT_DAY_TYPE, format_time

COMMANDS = """Commands:
  (any other line)  Append to the punch log
  :calc             Calculate working hours
  :show             Show the last result again
  :log              Print the current punch log
  :time             Print the current time
  :full / :half     Switch day type
  :clear            Clear the punch log and result
  :help             Show this help
  :quit             Exit"""


class PunchSession:
    def __init__(self, day_type=DEFAULT_DAY_TYPE, clock=datetime.now):
        self.clock = clock
        self.calculator = PunchCalculator(day_type)
        self.punch_log = ''
        self.current_time = clock()
        self.result = None
        self.result_time = None

    def tick(self):
        """Refresh the clock sample without recalculating"""
        self.current_time = self.clock()
        return self.current_time

    def add_line(self, line):
        if self.punch_log:
            self.punch_log += '\n'
        self.punch_log += line

    def set_day_type(self, day_type):
        self.calculator = PunchCalculator(day_type)

    def clear(self):
        self.punch_log = ''
        self.result = None
        self.result_time = None

    def calculate(self):
        self.result = self.calculator.calculate(self.punch_log, self.current_time)
        self.result_time = self.current_time
        return self.result

    def handle(self, line):
        """
        Process one line of input.
        Returns False when the session should end.
        """
        self.tick()
        command = line.strip().lower()

        if command == ':quit':
            return False
        elif command == ':calc':
            self.calculate()
            self.calculator.print_report(self.result, self.result_time)
        elif command == ':show':
            if self.result is None:
                print("Nothing calculated yet. Use :calc")
            else:
                self.calculator.print_report(self.result, self.result_time)
        elif command == ':log':
            print(self.punch_log if self.punch_log else "(empty)")
        elif command == ':time':
            print(f"Current Time: {format_time(self.current_time)}")
        elif command in (':full', ':half'):
            self.set_day_type(command[1:])
            print(f"Day type: {self.calculator.config['label']}")
        elif command == ':clear':
            self.clear()
            print("Punch log cleared")
        elif command == ':help':
            print(COMMANDS)
        elif command.startswith(':'):
            print(f"Unknown command: {line.strip()}")
        else:
            self.add_line(line)
        return True

    def run(self, input_func=input):
        print("Work Hours Calculator")
        print(f"Day type: {self.calculator.config['label']}")
        print("Paste your punch times (one per line), then :calc")
        print(COMMANDS)

        while True:
            try:
                line = input_func()
            except EOFError:
                break
            if not self.handle(line):
                break
