"""Utility functions for GPU passthrough configuration."""

import subprocess
from typing import Optional


class Colors:
    """Terminal colors for better readability."""
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    BOLD = '\033[1m'
    ENDC = '\033[0m'


def log_info(message: str) -> None:
    """Print an informational message."""
    print(f"{Colors.BLUE}{Colors.BOLD}[INFO]{Colors.ENDC} {message}")


def log_success(message: str) -> None:
    """Print a success message."""
    print(f"{Colors.GREEN}{Colors.BOLD}[SUCCESS]{Colors.ENDC} {message}")


def log_warning(message: str) -> None:
    """Print a warning message."""
    print(f"{Colors.YELLOW}{Colors.BOLD}[WARNING]{Colors.ENDC} {message}")


def log_error(message: str) -> None:
    """Print an error message."""
    print(f"{Colors.RED}{Colors.BOLD}[ERROR]{Colors.ENDC} {message}")


def log_debug(message: str, debug: bool = False) -> None:
    """Print a debug message if debug mode is enabled."""
    if debug:
        print(f"{Colors.BLUE}[DEBUG]{Colors.ENDC} {message}")


def print_header(title: str) -> None:
    """Print a bold section header."""
    print(f"\n{Colors.BOLD}{title}{Colors.ENDC}")


def print_banner(title: str) -> None:
    """Print a full-width bold banner."""
    print(f"{Colors.BOLD}{'=' * 80}{Colors.ENDC}")
    print(f"{Colors.BOLD}{title:^80}{Colors.ENDC}")
    print(f"{Colors.BOLD}{'=' * 80}{Colors.ENDC}")


def run_command(command: str, debug: bool = False, quiet: bool = False) -> Optional[str]:
    """Run a shell command and return its output.

    Args:
        command: The command to run
        debug: If True, print additional debug information
        quiet: If True, report failures only as debug output

    Returns:
        Command output as string or None if command failed
    """
    report = (lambda msg: log_debug(msg, debug)) if quiet else log_error
    log_debug(f"Running command: {command}", debug)
    try:
        result = subprocess.run(
            command,
            shell=True,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors='ignore'
        )
        if debug:
            log_debug(f"Command output: {result.stdout.strip()}", debug)
        return result.stdout.strip()
    except subprocess.CalledProcessError as e:
        report(f"Command failed: {command}")
        if e.stderr and e.stderr.strip():
            report(f"Stderr: {e.stderr.strip()}")
        log_debug(f"Stdout: {e.stdout.strip() if e.stdout else ''}", debug)
        return None
    except FileNotFoundError:
        report(f"Command not found: {command.split()[0]}")
        return None
    except OSError as e:
        log_error(f"Unexpected error running command '{command}': {e}")
        return None
