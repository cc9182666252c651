import json

from httpobs.__main__ import main


def test_cli_prints_server_tags(capsys) -> None:
    main(["--side", "server", "--method", "GET", "--uri", "/test/notFound", "--status", "404"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["name"] == "http.server.requests"
    assert payload["contextual_name"] == "http get"
    assert payload["low_cardinality"]["uri"] == "NOT_FOUND"
    assert payload["low_cardinality"]["outcome"] == "CLIENT_ERROR"


def test_cli_prints_client_io_error(capsys) -> None:
    main(["--method", "GET", "--uri", "http://example.org/x", "--aborted", "--error", "OSError"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["low_cardinality"]["status"] == "IO_ERROR"
    assert payload["low_cardinality"]["exception"] == "OSError"
    assert payload["high_cardinality"] == {"uri.expanded": "http://example.org/x", "client.name": "example.org"}
