# driveease/domain/services/chat_svc.py

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence
import json
import logging
from time import monotonic as _now

from openai import AsyncOpenAI, OpenAIError

from driveease.core.config import Settings
from driveease.domain.services.availability_svc import check_availability
from driveease.domain.services.constants import INTENT_RENT, INTENT_SALE

logger = logging.getLogger(__name__)


class ChatUnavailableError(RuntimeError):
    """Every configured model failed (or no API key is set)."""


CHECK_AVAILABILITY_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "check_availability",
        "description": (
            "Check if a specific car or category is available for sale or rent. "
            "ALWAYS use this tool when the user asks about specific car availability."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The car name (e.g. 'Toyota Prado'), brand (e.g. 'Toyota') "
                                   "or category (e.g. 'suv', 'sedan') the user is looking for.",
                },
                "intent": {
                    "type": "string",
                    "enum": [INTENT_SALE, INTENT_RENT],
                    "description": "Whether the user wants to buy or rent the car.",
                },
            },
            "required": ["query"],
        },
    },
}


async def fleet_context(car_repo, settings: Settings) -> Dict[str, str]:
    """Live inventory summary injected in the system prompt."""
    categories = sorted(c for c in await car_repo.distinct("category") if c)
    price = await car_repo.price_range()
    samples = await car_repo.samples_by_category(per_category=2)

    summary = " | ".join(
        f"{s['category'].upper()}: "
        + ", ".join(f"{x['brand']} {x['model']} ({x['type']}: KES {x['price']:,.0f})" for x in s["samples"])
        for s in samples
    )
    price_range = f"KES {price[0]:,.0f} - {price[1]:,.0f}" if price else "on request"
    return {
        "categories": ", ".join(categories),
        "available_cars": summary or "none listed",
        "price_range": price_range,
        "locations": ", ".join(sorted(settings.locations)),
    }


def system_prompt(ctx: Dict[str, str], settings: Settings) -> str:
    return f"""
Identity: You are the {settings.company_name} AI Assistant, a professional car sales and premium vehicle expert.

CAPABILITY: You have access to a tool 'check_availability' that checks our REAL database for sales and rental inventory.
- IF the user asks "Do you have a Toyota Prado?" or "Is X available?", you MUST call this tool.
- Always prioritize SELLING cars, but mention rentals if the user asks or if the car is available for both.
- If the tool returns cars, present them with their prices.
- If the tool returns no cars, suggest the closest matches from the inventory below.

General context:
- Company: {settings.company_name} ({settings.company_location})
- Categories: {ctx['categories']}
- Fleet highlights: {ctx['available_cars']}
- Typical price range: {ctx['price_range']}
- Locations: {ctx['locations']}
- Contact: phone {settings.company_phone}, email {settings.company_email}
""".strip()


def _history_messages(history: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    msgs = [{"role": m["role"], "content": m["content"]} for m in history]
    # A leading assistant greeting carries no context for the model
    while msgs and msgs[0]["role"] == "assistant":
        msgs.pop(0)
    return msgs


async def _run_tool(car_repo, name: str, arguments: str) -> Dict[str, Any]:
    if name != "check_availability":
        return {"error": f"Unknown tool {name}"}
    try:
        args = json.loads(arguments or "{}")
        return await check_availability(
            car_repo, query=args.get("query", ""), intent=args.get("intent", INTENT_SALE)
        )
    except (ValueError, TypeError) as e:
        return {"error": f"Invalid tool arguments: {e}"}
    except Exception:
        # The model gets an error payload; the user still gets an answer
        logger.exception("chat tool %s failed", name)
        return {"error": "Failed to check availability due to an internal error."}


async def chat(
    car_repo,
    *,
    message: str,
    history: Sequence[Dict[str, str]] = (),
    settings: Settings,
    client: Optional[AsyncOpenAI] = None,
) -> str:
    """
    One chat turn. The model may call `check_availability` once per turn;
    models from settings are tried in order until one answers.
    """
    if client is None:
        if not settings.OPENAI_API_KEY:
            raise ChatUnavailableError("OPENAI_API_KEY is not configured")
        client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    ctx = await fleet_context(car_repo, settings)
    base_messages: List[Dict[str, Any]] = [
        {"role": "system", "content": system_prompt(ctx, settings)},
        *_history_messages(history),
        {"role": "user", "content": message},
    ]

    last_error: Optional[Exception] = None
    for model in settings.OPENAI_CHAT_MODELS:
        messages = list(base_messages)
        try:
            t0 = _now()
            resp = await client.chat.completions.create(
                model=model,
                messages=messages,
                tools=[CHECK_AVAILABILITY_TOOL],
                max_tokens=settings.chat_max_tokens,
                timeout=settings.openai_timeout_s,
            )
            reply = resp.choices[0].message
            if reply.tool_calls:
                messages.append(reply.model_dump(exclude_none=True))
                for call in reply.tool_calls:
                    result = await _run_tool(car_repo, call.function.name, call.function.arguments)
                    logger.info("chat tool=%s args=%s result_available=%s", call.function.name,
                                call.function.arguments, result.get("available"))
                    messages.append({"role": "tool", "tool_call_id": call.id, "content": json.dumps(result)})
                resp = await client.chat.completions.create(
                    model=model,
                    messages=messages,
                    max_tokens=settings.chat_max_tokens,
                    timeout=settings.openai_timeout_s,
                )
                reply = resp.choices[0].message
            logger.info("chat model=%s duration=%.3fs", model, _now() - t0)
            return (reply.content or "").strip()
        except OpenAIError as e:
            logger.warning("chat model=%s failed: %s", model, e)
            last_error = e

    raise ChatUnavailableError(f"AI Service Unavailable: {last_error or 'no model configured'}")
