from typing import List, Sequence

from .models import ContainerSummary

# Discord rejects messages over 2000 characters.
MAX_MESSAGE_LENGTH: int = 2000
MAX_REPORT_LENGTH: int = 1900

NO_CONTAINERS_LINE: str = "(no running containers)"
NO_CONTAINERS_MESSAGE: str = "No running containers found."
CODE_FENCE: str = "```"


def fit_lines(lines: Sequence[str], available: int) -> List[str]:
    """
    Greedily keep lines (newline separated) within ``available`` characters.

    When a line does not fit, a "…and N more" summary replaces the rest if
    the summary itself fits; otherwise the output just ends at the last line
    that fit.
    """
    fitted: List[str] = []
    used: int = 0
    for index, line in enumerate(lines):
        separator: int = 1 if fitted else 0
        if used + separator + len(line) > available:
            truncation_line: str = f"…and {len(lines) - index} more"
            if used + separator + len(truncation_line) <= available:
                fitted.append(truncation_line)
            break
        fitted.append(line)
        used += separator + len(line)
    return fitted


def build_report_header(gateway_ip: str, external_ip: str, count: int) -> str:
    return (
        "📊 **Homelab Status Report**\n"
        "\n"
        f"**Host IP:** `{gateway_ip}`\n"
        f"**External IP:** `{external_ip}`\n"
        f"**Running containers:** `{count}`\n"
        "\n"
        "**Containers**"
    )


def format_container_line(container: ContainerSummary) -> str:
    return f"{container.name} — {container.uptime}"


def format_status_report(
    gateway_ip: str,
    external_ip: str,
    containers: Sequence[ContainerSummary],
    max_length: int = MAX_REPORT_LENGTH,
) -> str:
    header: str = build_report_header(gateway_ip, external_ip, len(containers))
    container_lines: List[str] = (
        [format_container_line(container) for container in containers]
        if containers
        else [NO_CONTAINERS_LINE]
    )
    available: int = max_length - len(header) - 1
    body_lines: List[str] = fit_lines(container_lines, available)
    return header + "\n" + "\n".join(body_lines)


def format_container_list(
    containers: Sequence[ContainerSummary],
    max_length: int = MAX_REPORT_LENGTH,
) -> str:
    if not containers:
        return NO_CONTAINERS_MESSAGE
    names: List[str] = [container.name for container in containers]
    return "\n".join(fit_lines(names, max_length))


def format_ip_change_alert(previous_ip: str, current_ip: str) -> str:
    return f"⚠️ **External IP changed**\n`{previous_ip}` → `{current_ip}`"


def format_logs_reply(
    name: str,
    log_text: str,
    line_count: int,
    capped: bool,
    max_length: int = MAX_MESSAGE_LENGTH,
) -> str:
    trimmed: str = log_text.strip()
    if not trimmed:
        return f"No logs available for {name}."

    notice: str = (
        f"Showing the last {line_count} lines (maximum allowed).\n" if capped else ""
    )
    wrapper_length: int = len(CODE_FENCE) * 2 + 2
    available: int = max(0, max_length - wrapper_length - len(notice))
    if len(trimmed) > available:
        # Keep the newest output.
        trimmed = trimmed[len(trimmed) - available:]
    return f"{notice}{CODE_FENCE}\n{trimmed}\n{CODE_FENCE}"
