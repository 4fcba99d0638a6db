"""Entry points used by the tests, in the same runtime and in forked children."""

import os
import sys
import time

from procwatch.pipeline.properties import get_system_property
from procwatch.pipeline.result import RequestedExit


def echo(args):
    print(" ".join(args))


def exit_caller(args):
    return RequestedExit(int(args[0]))


def return_status(args):
    return int(args[0])


def sleeper(args):
    time.sleep(float(args[0]))


def explode(args):
    raise RuntimeError("boom")


def hard_exit(args):
    sys.exit(int(args[0]))


def show_property(args):
    print(get_system_property(args[0], "<unset>"))


def show_env(args):
    print(os.environ.get(args[0], "<unset>"))


def both_streams(args):
    sys.stdout.write("out\n")
    sys.stderr.write("err\n")


def cat(args):
    sys.stdout.write(sys.stdin.read())


def main(args):
    print("main called")
