import json

import pytest

from php_sniffer import domain, report

from .fakes import raw_message, report_json


def test__parses_message_to_zero_based_point_diagnostic():
    stdout = report_json(
        raw_message(line=5, column=3, type="ERROR", source="X.Sniff", message="bad")
    )

    diagnostics = report.parse(stdout)

    assert len(diagnostics) == 1
    diagnostic = diagnostics[0]
    assert (diagnostic.range.start.line, diagnostic.range.start.character) == (4, 2)
    assert diagnostic.range.end == diagnostic.range.start
    assert diagnostic.severity == report.DiagnosticSeverity.ERROR
    assert diagnostic.message == "[X.Sniff]\nbad"


def test__maps_warning_type_to_warning_severity():
    stdout = report_json(raw_message(type="WARNING"))

    diagnostics = report.parse(stdout)

    assert diagnostics[0].severity == report.DiagnosticSeverity.WARNING


def test__keeps_order_of_tool_messages():
    stdout = report_json(
        raw_message(message="third line", line=3),
        raw_message(message="first line", line=1),
        raw_message(message="second line", line=2),
    )

    diagnostics = report.parse(stdout)

    assert [diagnostic.message.split("\n")[1] for diagnostic in diagnostics] == [
        "third line",
        "first line",
        "second line",
    ]


def test__collects_messages_of_all_files():
    stdout = json.dumps(
        {
            "files": {
                "/project/a.php": {"messages": [raw_message(message="a")]},
                "/project/b.php": {"messages": [raw_message(message="b")]},
            }
        }
    )

    diagnostics = report.parse(stdout)

    assert [diagnostic.message for diagnostic in diagnostics] == [
        "[X.Sniff]\na",
        "[X.Sniff]\nb",
    ]


def test__report_without_messages_gives_no_diagnostics():
    assert report.parse('{"files":{"STDIN":{"messages":[]}}}') == []


def test__truncated_json_raises_parse_error_with_raw_output():
    stdout = report_json(raw_message())[:40]

    with pytest.raises(domain.ReportParseError) as exc_info:
        report.parse(stdout, stderr="PHP Warning: something")

    message = str(exc_info.value)
    assert message.startswith(f"{stdout}\nPHP Warning: something\n")
    assert "ValidationError" in message


def test__unexpected_structure_raises_parse_error():
    with pytest.raises(domain.ReportParseError) as exc_info:
        report.parse('{"files": {"STDIN": {"messages": [{"line": "first"}]}}}')

    assert exc_info.value.stderr == ""
    assert exc_info.value.stdout.startswith('{"files"')


def test__non_report_text_raises_parse_error():
    with pytest.raises(domain.ReportParseError):
        report.parse("ERROR: the \"Foo\" coding standard is not installed.")
