"""Stub tool-server speaking newline-delimited JSON-RPC on stdin/stdout.

Used by the integration tests. It declares ``get_forecast`` and
``get_alerts`` and answers ``tools/call`` with canned weather data.

Some behaviours exist to exercise the client's framing:
- responses are written in two separately flushed fragments;
- calling ``get_alerts`` first emits a malformed line and a response with
  an id that was never requested;
- calling ``exit_now`` terminates the server without answering.
"""

import json
import sys
import time

TOOLS = [
    {
        "name": "get_forecast",
        "description": "Get weather forecast for a city",
        "inputSchema": {
            "type": "object",
            "properties": {"city": {"type": "string", "description": "City name"}},
            "required": ["city"],
        },
    },
    {
        "name": "get_alerts",
        "description": "Get weather alerts for a region",
        "inputSchema": {
            "type": "object",
            "properties": {
                "region": {"type": "string"},
                "severity": {"type": "string", "enum": ["minor", "severe"]},
            },
            "required": ["region"],
        },
    },
]

FORECASTS = {"Paris": "Sunny, 20C"}


def write(message: dict) -> None:
    data = json.dumps(message) + "\n"
    middle = len(data) // 2
    sys.stdout.write(data[:middle])
    sys.stdout.flush()
    time.sleep(0.005)
    sys.stdout.write(data[middle:])
    sys.stdout.flush()


def text_result(text: str) -> dict:
    return {"content": [{"type": "text", "text": text}]}


def handle(request: dict) -> dict | None:
    method = request.get("method")
    params = request.get("params") or {}
    reply = {"jsonrpc": "2.0", "id": request.get("id")}

    if method == "tools/list":
        reply["result"] = {"tools": TOOLS}
        return reply

    if method != "tools/call":
        reply["error"] = {"code": -32601, "message": f"Method not found: {method}"}
        return reply

    name = params.get("name")
    arguments = params.get("arguments") or {}

    if name == "exit_now":
        sys.exit(0)

    if name == "get_forecast":
        city = arguments.get("city", "")
        reply["result"] = text_result(FORECASTS.get(city, f"No forecast for {city}"))
    elif name == "get_alerts":
        sys.stdout.write("this is not json\n")
        sys.stdout.write(json.dumps({"jsonrpc": "2.0", "id": 9999, "result": {}}) + "\n")
        sys.stdout.flush()
        reply["result"] = text_result(f"No alerts for {arguments.get('region')}")
    else:
        reply["error"] = {"code": -32602, "message": f"Unknown tool: {name}"}
    return reply


def main() -> None:
    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        response = handle(json.loads(line))
        if response is not None:
            write(response)


if __name__ == "__main__":
    main()
