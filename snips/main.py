# snips/main.py

# The console entry point only dispatches to the CLI command group, which
# owns settings, logging and the store for each invocation.
from snips.cli.main import snips


def main():
    """Runs the `snips` command line."""
    snips(prog_name="snips")


if __name__ == '__main__':
    main()
