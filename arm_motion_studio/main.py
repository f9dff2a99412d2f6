# arm_motion_studio/main.py
"""
Main entry point for Arm Motion Studio.
This simply calls the CLI's main function.
"""
from .cli import main as cli_main


def main():
    """Runs the command-line interface for the studio."""
    cli_main()


if __name__ == "__main__":
    main()
