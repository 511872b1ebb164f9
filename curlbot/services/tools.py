"""Booking tools offered to the LLM through function calling."""

import json
from typing import Optional

from curlbot.logging_config import get_logger
from curlbot.services.booksy_service import KNOWN_SERVICES, BookingCatalog, booking_instructions

logger = get_logger("tools")

BOOKING_TOOLS = [
    {
        "name": "get_booksy_services",
        "description": (
            "Get complete list of all available services from Tata's Booksy page. "
            "Use when client asks about services, pricing, or wants to see all options."
        ),
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
    {
        "name": "search_booksy_services",
        "description": (
            "Search for specific services by keyword (e.g., 'curly', 'color', 'consultation'). "
            "Use when client mentions specific service types."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search term for finding specific services (e.g., 'curly cut', 'color', 'first time')",
                }
            },
            "required": ["query"],
        },
    },
    {
        "name": "get_service_recommendations",
        "description": (
            "Get personalized service recommendations based on client type. "
            "Use when client identifies as new/returning or needs guidance."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "clientType": {
                    "type": "string",
                    "enum": ["new_client", "returning_client", "unknown"],
                    "description": "Type of client for personalized recommendations",
                }
            },
            "required": ["clientType"],
        },
    },
    {
        "name": "get_booking_instructions",
        "description": (
            "Get specific instructions for booking a service on Booksy. "
            "Use when client is ready to book or needs booking guidance."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "serviceName": {
                    "type": "string",
                    "description": "Name of the service the client wants to book",
                }
            },
            "required": ["serviceName"],
        },
    },
]

TOOL_NAMES = {tool["name"] for tool in BOOKING_TOOLS}


def fallback_payload(name: str, arguments: Optional[dict] = None) -> dict:
    """Static answer for a tool whose live call failed."""
    arguments = arguments or {}
    services = [dict(service) for service in KNOWN_SERVICES]

    if name == "get_booksy_services":
        return {
            "services": services,
            "fallback": True,
            "message": "Using backup service data. For complete options and live booking, please visit Tata's Booksy page.",
        }
    if name == "search_booksy_services":
        query = str(arguments.get("query") or "")
        term = query.lower()
        matches = [s for s in services if term in s["name"].lower() or term in s["category"]] if term else services
        return {
            "services": matches,
            "query": query,
            "fallback": True,
            "message": f'Found services related to "{query}" from backup data.',
        }
    if name == "get_service_recommendations":
        client_type = arguments.get("clientType")
        if client_type == "returning_client":
            picks = [s for s in services if s["category"] == "returning_client"]
        else:
            picks = [s for s in services if s["category"] in ("new_client", "consultation")]
        return {
            "clientType": client_type or "unknown",
            "services": picks,
            "fallback": True,
        }
    if name == "get_booking_instructions":
        service_name = str(arguments.get("serviceName") or "your desired service")
        payload = booking_instructions(service_name)
        payload["fallback"] = True
        payload["message"] = "Here are the general booking steps. The live calendar will show current availability."
        return payload

    return {
        "error": "Service temporarily unavailable",
        "fallback": True,
        "message": "Please visit Tata's Booksy page directly for current information.",
    }


def parse_arguments(raw: object) -> dict:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("tool arguments must be a JSON object")
    return parsed


async def execute_tool_call(name: str, arguments: object, catalog: BookingCatalog) -> dict:
    """Run one tool against the catalog. Never raises."""
    if name not in TOOL_NAMES:
        logger.warning(f"Unknown tool requested: {name}")
        return {"error": f"Unknown function: {name}"}

    try:
        args = parse_arguments(arguments)
    except ValueError as e:
        logger.warning(f"Bad arguments for {name}: {e}")
        return fallback_payload(name, {})

    try:
        if name == "get_booksy_services":
            return await catalog.get_services()
        if name == "search_booksy_services":
            return await catalog.search_services(args.get("query"))
        if name == "get_service_recommendations":
            return await catalog.get_recommendations(args.get("clientType"))
        return await catalog.get_booking_instructions(str(args.get("serviceName") or ""))
    except Exception as e:
        logger.error(f"Tool {name} failed: {e}", exc_info=True)
        return fallback_payload(name, args)


async def run_tool_calls(tool_calls: list, catalog: BookingCatalog) -> list[dict]:
    """Execute the model's tool calls and build the ``tool`` role messages."""
    results = []
    for tool_call in tool_calls:
        function = tool_call.get("function") or {}
        name = function.get("name") or ""
        logger.info(f"Executing tool {name}", extra={"context": {"tool_call_id": tool_call.get("id")}})
        result = await execute_tool_call(name, function.get("arguments"), catalog)
        results.append(
            {
                "role": "tool",
                "tool_call_id": tool_call.get("id"),
                "name": name,
                "content": json.dumps(result, ensure_ascii=False, default=str),
            }
        )
    return results
