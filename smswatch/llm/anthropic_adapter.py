"""
smswatch/llm/anthropic_adapter.py
Anthropic Messages API backend. Needs an API key (config agent.api_key
or the ANTHROPIC_API_KEY environment variable).

Request body:
  {"model": ..., "max_tokens": ..., "messages": [{"role": "user", "content": <prompt>}]}
Reply text is read from content[0].text.
"""

import json
import logging
import urllib.error
import urllib.request

from smswatch.llm.base import RemoteClassifier

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = '2023-06-01'


class AnthropicClassifier(RemoteClassifier):

    def __init__(
        self,
        api_key:     str   = '',
        model:       str   = 'claude-sonnet-4-20250514',
        max_tokens:  int   = 256,
        enabled:     bool  = True,
        base_url:    str   = 'https://api.anthropic.com',
        timeout_sec: float = 15,
    ):
        self.api_key     = api_key or ''
        self.model       = model
        self.max_tokens  = max_tokens
        self.enabled     = enabled
        self.base_url    = base_url.rstrip('/')
        self.timeout_sec = timeout_sec

    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key.strip())

    def complete(self, prompt: str) -> str:
        payload = json.dumps({
            'model':      self.model,
            'max_tokens': self.max_tokens,
            'messages':   [{'role': 'user', 'content': prompt}],
        }).encode('utf-8')

        req = urllib.request.Request(
            f"{self.base_url}/v1/messages",
            data    = payload,
            headers = {
                'Content-Type':      'application/json',
                'x-api-key':         self.api_key,
                'anthropic-version': ANTHROPIC_VERSION,
            },
            method  = 'POST',
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_sec) as resp:
                data = json.loads(resp.read().decode('utf-8'))
        except urllib.error.HTTPError as e:
            # Never echo the request: it carries the key and the message body
            raise RuntimeError(f"Anthropic API returned HTTP {e.code}") from None

        blocks = data.get('content') or []
        if not blocks or not isinstance(blocks[0], dict):
            raise ValueError("Anthropic reply has no content blocks")
        return str(blocks[0].get('text') or '')
