"""
smswatch/llm/ollama_adapter.py
Ollama backend — classification without sending messages off the machine.
Supports any model pulled via `ollama pull <model>`.

RECOMMENDED MODELS (by RAM):
  <4GB RAM:  phi3:mini, qwen2:1.5b
  4-8GB RAM: mistral:7b, llama3.1:8b
"""

import json
import logging
import urllib.error
import urllib.request
from typing import List

from smswatch.llm.base import RemoteClassifier

logger = logging.getLogger(__name__)


class OllamaClassifier(RemoteClassifier):

    def __init__(
        self,
        model:       str   = 'llama3.1:8b',
        host:        str   = 'http://localhost:11434',
        max_tokens:  int   = 256,
        enabled:     bool  = True,
        timeout_sec: float = 15,
        temperature: float = 0.1,
    ):
        self.model       = model
        self.host        = (host or '').rstrip('/')
        self.max_tokens  = max_tokens
        self.enabled     = enabled
        self.timeout_sec = timeout_sec
        self.temperature = temperature

    def is_configured(self) -> bool:
        return self.enabled and bool(self.host) and bool(self.model)

    # ── AVAILABILITY CHECK ───────────────────────────────────
    def is_available(self) -> bool:
        """Ping Ollama and confirm the configured model is pulled."""
        models = self.list_available_models()
        available = any(
            m == self.model or m.startswith(self.model.split(':')[0])
            for m in models
        )
        if not available:
            logger.warning(
                f"Model '{self.model}' not found at {self.host}. "
                f"Available: {models}. Run: ollama pull {self.model}"
            )
        return available

    def list_available_models(self) -> List[str]:
        try:
            req = urllib.request.Request(f"{self.host}/api/tags", method='GET')
            with urllib.request.urlopen(req, timeout=5) as resp:
                data = json.loads(resp.read().decode())
            return [m['name'] for m in data.get('models', [])]
        except (urllib.error.URLError, OSError, ValueError, KeyError) as e:
            logger.warning(f"Ollama not reachable at {self.host}: {e}")
            return []

    # ── CLASSIFICATION ───────────────────────────────────────
    def complete(self, prompt: str) -> str:
        payload = json.dumps({
            'model':    self.model,
            'messages': [{'role': 'user', 'content': prompt}],
            'stream':   False,
            'format':   'json',   # Ollama JSON mode
            'options':  {
                'temperature': self.temperature,
                'num_predict': self.max_tokens,
            },
        }).encode('utf-8')

        req = urllib.request.Request(
            f"{self.host}/api/chat",
            data    = payload,
            headers = {'Content-Type': 'application/json'},
            method  = 'POST',
        )
        with urllib.request.urlopen(req, timeout=self.timeout_sec) as resp:
            data = json.loads(resp.read().decode('utf-8'))

        return str((data.get('message') or {}).get('content', '')).strip()
