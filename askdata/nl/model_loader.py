import logging
import os
import threading
from typing import Optional

import torch
from transformers import AutoTokenizer, AutoModelForCausalLM, AutoModelForSeq2SeqLM
from askdata.settings import MODEL_ID, MAX_NEW_TOKENS, TRANSFORMERS_CACHE

# Tell Hugging Face to use fast transfer if available
os.environ.setdefault("HF_HUB_ENABLE_HF_TRANSFER", "1")

log = logging.getLogger(__name__)


def _pick_device() -> str:
    if torch.cuda.is_available():
        return "cuda"
    if (
        hasattr(torch.backends, "mps")
        and torch.backends.mps.is_available()
        and torch.backends.mps.is_built()
    ):
        return "mps"
    return "cpu"


class LocalModelClient:
    """
    Text generation backed by a Hugging Face model on this machine.

    The weights are loaded once, on `load()` or on the first `complete()`,
    and then shared by every request that holds this client.
    """

    def __init__(self, model_id: str = MODEL_ID, max_new_tokens: int = MAX_NEW_TOKENS,
                 cache_dir: Optional[str] = None):
        self.model_id = model_id
        self.max_new_tokens = max_new_tokens
        self.cache_dir = cache_dir or str(TRANSFORMERS_CACHE)
        self._tokenizer = None
        self._model = None
        self._is_seq2seq = False
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        """
        Load tokenizer and weights.
        Tries a causal LM first, then falls back to a seq2seq LM.
        """
        with self._lock:
            if self._model is not None:
                return
            device = _pick_device()
            dtype = torch.float16 if device != "cpu" else torch.float32
            log.info("loading model %s on %s", self.model_id, device)

            tok = AutoTokenizer.from_pretrained(
                self.model_id, use_fast=True, cache_dir=self.cache_dir, trust_remote_code=True
            )
            # Ensure a pad token exists for generation
            if tok.pad_token_id is None:
                tok.pad_token = tok.eos_token or tok.unk_token or "</s>"

            try:
                model = AutoModelForCausalLM.from_pretrained(
                    self.model_id,
                    cache_dir=self.cache_dir,
                    torch_dtype=dtype,
                    low_cpu_mem_usage=True,
                    trust_remote_code=True,
                )
                is_seq2seq = False
            except (ValueError, OSError):
                # Not a causal architecture (e.g., T5 family)
                model = AutoModelForSeq2SeqLM.from_pretrained(
                    self.model_id,
                    cache_dir=self.cache_dir,
                    torch_dtype=dtype,
                    low_cpu_mem_usage=True,
                    trust_remote_code=True,
                )
                is_seq2seq = True

            model.to(device)
            model.eval()
            self._tokenizer, self._model, self._is_seq2seq = tok, model, is_seq2seq

    def _render(self, system: str, user: str) -> str:
        tok = self._tokenizer
        if getattr(tok, "chat_template", None):
            messages = [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ]
            return tok.apply_chat_template(messages, tokenize=False, add_generation_prompt=True)
        return f"{system}\n\n{user}\n"

    def complete(self, system: str, user: str, max_new_tokens: Optional[int] = None) -> str:
        """
        Greedy (temperature 0) generation; returns only the completion text.
        """
        if not self.ready:
            self.load()

        tok, model = self._tokenizer, self._model
        device = next(model.parameters()).device
        enc = tok(self._render(system, user), return_tensors="pt", padding=False).to(device)

        with torch.no_grad():
            out_ids = model.generate(
                **enc,
                max_new_tokens=max_new_tokens or self.max_new_tokens,
                do_sample=False,     # greedy decoding
                num_beams=1,
                use_cache=True,
                eos_token_id=tok.eos_token_id or tok.pad_token_id,
                pad_token_id=tok.pad_token_id or tok.eos_token_id,
            )

        if self._is_seq2seq:
            # Seq2seq models output only the completion
            return tok.decode(out_ids[0], skip_special_tokens=True).strip()
        # Causal models echo the prompt; strip it
        prompt_len = enc["input_ids"].shape[-1]
        return tok.decode(out_ids[0][prompt_len:], skip_special_tokens=True).strip()
