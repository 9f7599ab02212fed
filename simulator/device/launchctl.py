"""Parser for `launchctl list` output captured from inside a simulator."""

from __future__ import annotations

from simulator.models import InvalidLaunchctlOutputError, Service

HEADER = ("PID", "Status", "Label")


def parse_launchctl_list(output: str) -> list[Service]:
    """Parse tab-separated `launchctl list` output into services.

    Example input:
        PID\tStatus\tLabel
        -\t0\tcom.apple.storedownloadd.daemon
        1234\t0\tcom.apple.backboardd

    Blank lines and the header row are ignored. Any other row that isn't
    exactly three fields with an integer status raises
    InvalidLaunchctlOutputError instead of being dropped.
    """
    services: list[Service] = []
    for lineno, line in enumerate(output.splitlines(), start=1):
        if not line.strip():
            continue
        fields = line.split("\t")
        if tuple(f.strip() for f in fields) == HEADER:
            continue
        if len(fields) != 3:
            raise InvalidLaunchctlOutputError(
                f"line {lineno}: expected 3 tab-separated fields, got {len(fields)}: {line!r}",
                tool="launchctl",
            )
        pid, status, label = (f.strip() for f in fields)
        try:
            status_code = int(status)
        except ValueError:
            raise InvalidLaunchctlOutputError(
                f"line {lineno}: status {status!r} is not an integer",
                tool="launchctl",
            ) from None
        services.append(Service(pid=pid, status=status_code, label=label))
    return services
