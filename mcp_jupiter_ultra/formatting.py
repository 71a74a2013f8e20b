import json
from typing import Any, Dict, List, Optional, Sequence

from .classifier import ExecutionOutcome, OutcomeKind
from .models import Quote

MAX_SEARCH_RESULTS = 5


def explorer_link(explorer_tx_url: str, signature: Optional[str]) -> Optional[str]:
    if not signature:
        return None
    return f"{explorer_tx_url.rstrip('/')}/{signature}"


def render_quote(quote: Quote) -> str:
    return json.dumps(quote.summary(), indent=2)


def render_outcome(outcome: ExecutionOutcome, explorer_tx_url: str) -> str:
    """Human-readable execution result, with the full last response appended."""
    link = explorer_link(explorer_tx_url, outcome.signature)
    lines: List[str] = []

    if outcome.kind is OutcomeKind.SUCCESS:
        lines.append(f"{outcome.message}!")
        lines.append("")
        lines.append(
            f"Exchange: {outcome.input_amount or 'N/A'} -> {outcome.output_amount or 'N/A'}"
        )
        lines.append(f"Transaction: {outcome.signature}")
        lines.append(f"Slot: {outcome.slot}")
    elif outcome.kind is OutcomeKind.FAILED:
        lines.append("Swap failed")
        lines.append("")
        lines.append(f"Error: {outcome.message}")
        if outcome.category is not None:
            lines.append(f"Category: {outcome.category.value}")
        if outcome.guidance:
            lines.append(f"Hint: {outcome.guidance}")
        if outcome.signature:
            lines.append(f"Transaction: {outcome.signature}")
    else:
        lines.append(outcome.message)
        lines.append("")
        lines.append(f"Status: {outcome.last_status}")
        if outcome.signature:
            lines.append(f"Transaction: {outcome.signature}")

    if link:
        lines.append(f"View: {link}")
    if outcome.kind is OutcomeKind.TIMED_OUT:
        lines.append("")
        lines.append(outcome.guidance)

    lines.append("")
    lines.append("Full response:")
    lines.append(json.dumps(outcome.raw, indent=2))
    return "\n".join(lines)


def _format_volume(volume: float) -> str:
    if volume > 1_000_000:
        return f"${volume / 1_000_000:.1f}M"
    return f"${volume / 1_000:.0f}K"


def _format_token(index: int, token: Dict[str, Any]) -> str:
    stats = token.get("stats24h") or {}
    audit = token.get("audit") or {}

    change = stats.get("priceChange") or 0
    change_str = f"+{change:.2f}%" if change > 0 else f"{change:.2f}%"
    volume = (stats.get("buyVolume") or 0) + (stats.get("sellVolume") or 0)
    price = token.get("usdPrice")
    price_str = f"${price:.6f}" if price is not None else "N/A"

    flags = []
    if token.get("isVerified"):
        flags.append("verified")
    if audit.get("mintAuthorityDisabled"):
        flags.append("mint disabled")
    if audit.get("freezeAuthorityDisabled"):
        flags.append("freeze disabled")
    if audit.get("isSus"):
        flags.append("SUSPICIOUS")

    lines = [
        f"{index}. {token.get('symbol', '?')} - {token.get('name', '?')}",
        f"   Mint: {token.get('id', 'N/A')}",
        f"   Price: {price_str} ({change_str} 24h)",
        f"   24h Volume: {_format_volume(volume)}",
        f"   Organic Score: {token.get('organicScoreLabel') or 'N/A'}",
    ]
    if flags:
        lines.append(f"   Flags: {', '.join(flags)}")
    lines.append(f"   Holders: {token.get('holderCount') or 'N/A'}")
    return "\n".join(lines)


def render_search(query: str, tokens: Sequence[Dict[str, Any]]) -> str:
    if not tokens:
        return (
            f'No tokens found for query: "{query}"\n\n'
            "Try:\n"
            "- Symbol: SOL, USDC, BONK, JUP\n"
            "- Name: Solana, USD Coin\n"
            "- Mint address: So111..."
        )

    blocks = [f"Tokens found: {len(tokens)}"]
    for index, token in enumerate(tokens[:MAX_SEARCH_RESULTS], start=1):
        blocks.append(_format_token(index, token))
    if len(tokens) > MAX_SEARCH_RESULTS:
        blocks.append(f"... and {len(tokens) - MAX_SEARCH_RESULTS} more tokens")
    blocks.append("Use the token mint address for swaps.")
    return "\n\n".join(blocks)


def filter_holdings(holdings: Dict[str, Any], mints: Optional[Sequence[str]]) -> Dict[str, Any]:
    """Restricts the per-mint ``tokens`` map to ``mints``; the rest is passed through."""
    if not mints:
        return holdings
    wanted = set(mints)
    tokens = holdings.get("tokens") or {}
    filtered = dict(holdings)
    filtered["tokens"] = {mint: accounts for mint, accounts in tokens.items() if mint in wanted}
    return filtered


def render_holdings(holdings: Dict[str, Any]) -> str:
    return json.dumps(holdings, indent=2)
