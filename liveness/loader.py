"""Resolve a model reference into the bytes of a serialized model.

A reference is a local path, an ``s3://bucket/key`` URI, an ``http(s)://``
URL or the raw model bytes themselves. Every failure surfaces as
:class:`~liveness.errors.LoadError`.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from CONSTANTS import LivenessSettings, ModelConfigs
from liveness.errors import LoadError

logger = logging.getLogger(__name__)

ModelRef = Union[str, "os.PathLike[str]", bytes]


@dataclass(frozen=True)
class ModelArtifact:
    """A serialized model and the name its format is inferred from."""

    name: str
    content: bytes

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lower()


def _read_file(path: Path) -> bytes:
    try:
        if not path.is_file():
            raise LoadError(f"Model artifact not found: {path}")
        return path.read_bytes()
    except OSError as exc:
        raise LoadError(f"Model artifact unreadable: {path}") from exc


def _fetch_s3(uri: str) -> bytes:
    parsed = urlparse(uri)
    bucket, key = parsed.netloc, parsed.path.lstrip("/")
    if not bucket or not key:
        raise LoadError(f"Malformed S3 model reference: {uri}")
    try:
        s3 = boto3.client("s3")
        response = s3.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()
    except (BotoCoreError, ClientError) as exc:
        raise LoadError(f"Could not fetch s3://{bucket}/{key}") from exc


def _fetch_http(url: str, timeout: float) -> bytes:
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise LoadError(f"Could not download model from {url}") from exc
    return response.content


def _resolve_path(ref: str, model_dir: str) -> Path:
    path = Path(ref).expanduser()
    try:
        if not path.is_absolute() and not path.exists():
            candidate = Path(model_dir) / path
            if candidate.exists():
                return candidate
    except OSError as exc:
        raise LoadError(f"Model artifact unreadable: {ref}") from exc
    return path


def load_model_artifact(
    model_ref: ModelRef,
    settings: Optional[LivenessSettings] = None,
) -> ModelArtifact:
    """Return the serialized model behind ``model_ref``.

    Relative paths that do not exist as given are looked up in
    ``settings.model_dir``. Raw bytes are assumed to be in the default
    model format.
    """
    settings = settings or LivenessSettings()

    if isinstance(model_ref, (bytes, bytearray, memoryview)):
        content = bytes(model_ref)
        name = f"<in-memory>{ModelConfigs.LIVENESS_MODEL_FORMAT}"
    else:
        try:
            ref = os.fspath(model_ref)
        except TypeError as exc:
            raise LoadError(f"Unsupported model reference: {model_ref!r}") from exc
        if not isinstance(ref, str):
            raise LoadError(f"Unsupported model reference: {model_ref!r}")
        scheme = urlparse(ref).scheme
        if scheme == "s3":
            content = _fetch_s3(ref)
            name = ref
        elif scheme in ("http", "https"):
            content = _fetch_http(ref, settings.download_timeout)
            name = urlparse(ref).path or ref
        else:
            path = _resolve_path(ref, settings.model_dir)
            content = _read_file(path)
            name = str(path)

    if not content:
        raise LoadError(f"Model artifact is empty: {name}")

    logger.info("Loaded model artifact %s (%d bytes)", name, len(content))
    return ModelArtifact(name=name, content=content)


def download_model(
    url: str,
    destination: Union[str, "os.PathLike[str]"],
    settings: Optional[LivenessSettings] = None,
) -> Path:
    """Fetch a remote model once and keep it at ``destination``.

    An existing file is reused as-is. A partially written file is removed
    when the download fails.
    """
    destination = Path(destination)
    if destination.is_file():
        logger.info("Model already present at %s", destination)
        return destination

    artifact = load_model_artifact(url, settings)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(artifact.content)
    except OSError as exc:
        if destination.exists():
            destination.unlink()
        raise LoadError(f"Could not write model to {destination}") from exc

    logger.info("Downloaded %s to %s", url, destination)
    return destination
