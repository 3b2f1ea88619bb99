# Overview: Gemini text generation for product copy and sales insight; never raises to callers.

"""
AI enrichment via the Gemini generateContent REST endpoint.

Every failure (missing key, transport error, non-2xx, unexpected payload)
is logged and turned into a fixed fallback string, so the caller always
gets text. Nothing here runs on the checkout path.
"""

from __future__ import annotations

import json
from typing import Iterable

import httpx
from flask import current_app

NO_KEY_DESCRIPTION = "Deskripsi AI tidak tersedia (API Key hilang)."
FAILED_DESCRIPTION = "Tidak dapat membuat deskripsi saat ini."
NO_KEY_INSIGHT = "Analisis AI membutuhkan API Key."
NO_DATA_INSIGHT = "Belum ada data penjualan untuk dianalisis."
FAILED_INSIGHT = "Tidak dapat menganalisis data saat ini."

INSIGHT_TRANSACTION_LIMIT = 20


class AIResponseError(Exception):
    """Gemini answered, but not with usable text."""


def _extract_text(payload: dict) -> str:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts).strip()
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise AIResponseError("Malformed generateContent response") from exc
    if not text:
        raise AIResponseError("Empty generateContent response")
    return text


def generate_text(prompt: str, *, client: httpx.Client | None = None) -> str:
    """
    Single generateContent call. Raises httpx.HTTPError or AIResponseError.

    `client` lets tests plug in an httpx.MockTransport.
    """
    config = current_app.config
    url = f"{config['GEMINI_BASE_URL'].rstrip('/')}/models/{config['GEMINI_MODEL']}:generateContent"
    body = {"contents": [{"parts": [{"text": prompt}]}]}
    headers = {"x-goog-api-key": config["GEMINI_API_KEY"]}

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=float(config.get("AI_TIMEOUT_SECONDS", 10)))
    try:
        response = client.post(url, json=body, headers=headers)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise AIResponseError("Response is not JSON") from exc
        return _extract_text(payload)
    finally:
        if owns_client:
            client.close()


def _api_key_available() -> bool:
    return bool(current_app.config.get("GEMINI_API_KEY"))


def generate_product_description(name: str, category: str, *, client: httpx.Client | None = None) -> str:
    """Short Indonesian product blurb (max ~20 words)."""
    if not _api_key_available():
        current_app.logger.warning("Gemini API key not configured; product description skipped")
        return NO_KEY_DESCRIPTION

    prompt = (
        "Buatkan deskripsi produk yang menarik, menggugah selera, dan singkat "
        f'(maksimal 20 kata) dalam Bahasa Indonesia untuk produk bernama "{name}" '
        f'yang termasuk dalam kategori "{category}". Jangan gunakan tanda kutip.'
    )
    try:
        return generate_text(prompt, client=client)
    except (httpx.HTTPError, AIResponseError):
        current_app.logger.warning("Gemini product description failed", exc_info=True)
        return FAILED_DESCRIPTION


def summarize_transactions(transactions: Iterable) -> list[dict]:
    """
    Compact view sent to the model: day, total and item names of the most
    recent transactions only.
    """
    ordered = sorted(transactions, key=lambda t: (t.created_at, t.id))
    return [
        {
            "date": t.created_at.date().isoformat(),
            "total": t.total,
            "items": ", ".join(line.name for line in t.lines),
        }
        for t in ordered[-INSIGHT_TRANSACTION_LIMIT:]
    ]


def generate_sales_insight(transactions: Iterable, *, client: httpx.Client | None = None) -> str:
    """Three-sentence Indonesian summary of recent sales."""
    if not _api_key_available():
        current_app.logger.warning("Gemini API key not configured; sales insight skipped")
        return NO_KEY_INSIGHT

    data = summarize_transactions(transactions)
    if not data:
        return NO_DATA_INSIGHT

    prompt = (
        "Anda adalah analis bisnis profesional. Analisis data transaksi POS terbaru berikut ini: "
        f"{json.dumps(data, ensure_ascii=False)}. Berikan ringkasan wawasan singkat (3 kalimat) "
        "tentang performa penjualan dan tren produk terlaris dalam Bahasa Indonesia yang "
        "profesional dan menyemangati."
    )
    try:
        return generate_text(prompt, client=client)
    except (httpx.HTTPError, AIResponseError):
        current_app.logger.warning("Gemini sales insight failed", exc_info=True)
        return FAILED_INSIGHT
