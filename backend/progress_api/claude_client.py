from __future__ import annotations
import httpx
from typing import Any, Dict, Optional
from .settings import settings

class ClaudeClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.anthropic_api_key
		self._fallback_enabled = bool(settings.openrouter_api_key)
		if not self.api_key and not self._fallback_enabled:
			raise ValueError("ANTHROPIC_API_KEY is not configured")
		self.model = model or settings.anthropic_model
		self.base_url = base_url or settings.anthropic_base_url
		self._headers = {
			"x-api-key": self.api_key or "",
			"anthropic-version": settings.anthropic_version,
			"content-type": "application/json",
		}
		self._client = httpx.AsyncClient(timeout=60, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=60, transport=transport)

	async def generate(self, prompt: str, *, max_tokens: Optional[int] = None) -> str:
		payload: Dict[str, Any] = {
			"model": self.model,
			"max_tokens": max_tokens or settings.summary_max_tokens,
			"messages": [{"role": "user", "content": prompt}],
		}
		last_error: Optional[Exception] = None
		if self.api_key:
			try:
				r = await self._client.post(self.base_url, headers=self._headers, json=payload)
				r.raise_for_status()
			except httpx.HTTPStatusError as http_err:
				last_error = RuntimeError(f"Claude request failed: {_error_message(http_err.response)}")
			except httpx.RequestError as net_err:
				last_error = net_err
			if last_error is None:
				try:
					data = r.json()
					return data["content"][0]["text"]
				except Exception:
					last_error = RuntimeError(f"Unexpected Claude response: {r.text}")
		if not self._fallback_enabled:
			raise last_error or RuntimeError("Claude call failed and no fallback configured")
		return await self._fallback_generate(prompt, last_error)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, prompt: str, primary_error: Optional[Exception]) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise primary_error or RuntimeError("Fallback requested but OpenRouter is not configured")
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except Exception as fallback_err:
			if primary_error is not None:
				raise RuntimeError(
					f"Claude primary call failed ({primary_error}); fallback via OpenRouter also failed"
				) from fallback_err
			raise fallback_err


def _error_message(response: httpx.Response) -> str:
	# Anthropic errors look like {"type": "error", "error": {"type": ..., "message": ...}}
	try:
		return response.json()["error"]["message"]
	except Exception:
		return f"HTTP {response.status_code}"
