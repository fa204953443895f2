"""設定型定義（pydantic BaseModel）と YAML 読み込み"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError, SessionLifecycleErrorCodes
from .models import AuthBackendConfig
from .policy import API_CALL_POLICY, AUTH_POLICY, SESSION_REFRESH_POLICY, RetryPolicy
from .storage import DEFAULT_REGISTRY, AuthKeyRegistry


class RetryPolicySection(BaseModel):
    """リトライポリシー設定。"""

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0.0)
    max_delay: float = Field(default=10.0, ge=0.0)
    backoff_factor: float = Field(default=2.0, gt=1.0)
    jitter: bool = True

    @classmethod
    def from_policy(cls, policy: RetryPolicy) -> RetryPolicySection:
        return cls(
            max_retries=policy.max_retries,
            base_delay=policy.base_delay,
            max_delay=policy.max_delay,
            backoff_factor=policy.backoff_factor,
            jitter=policy.jitter,
        )

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(**self.model_dump())


class RetrySection(BaseModel):
    """名前付きリトライポリシー。"""

    session_refresh: RetryPolicySection = Field(
        default_factory=lambda: RetryPolicySection.from_policy(SESSION_REFRESH_POLICY)
    )
    api_call: RetryPolicySection = Field(
        default_factory=lambda: RetryPolicySection.from_policy(API_CALL_POLICY)
    )
    auth: RetryPolicySection = Field(
        default_factory=lambda: RetryPolicySection.from_policy(AUTH_POLICY)
    )


class CleanupSection(BaseModel):
    """セッション掃除の設定。"""

    reload_delay_seconds: float = Field(default=1.0, ge=0.0)
    exact_keys: list[str] = Field(default_factory=lambda: list(DEFAULT_REGISTRY.exact_keys))
    key_prefixes: list[str] = Field(default_factory=lambda: list(DEFAULT_REGISTRY.prefixes))
    key_substrings: list[str] = Field(default_factory=lambda: list(DEFAULT_REGISTRY.substrings))

    def to_registry(self) -> AuthKeyRegistry:
        return AuthKeyRegistry(
            exact_keys=tuple(self.exact_keys),
            prefixes=tuple(self.key_prefixes),
            substrings=tuple(self.key_substrings),
        )


class BackendSection(BaseModel):
    """認証バックエンド接続設定。"""

    base_url: str = ""
    api_key: str = ""
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    verify_remote: bool = False

    def to_backend_config(self) -> AuthBackendConfig:
        return AuthBackendConfig(
            base_url=self.base_url,
            api_key=self.api_key,
            timeout_seconds=self.timeout_seconds,
            verify_remote=self.verify_remote,
        )


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class SessionLifecycleConfig(BaseModel):
    """セッションライフサイクル全体設定。"""

    expiry_threshold_seconds: float = Field(default=300.0, ge=0.0)
    validation_interval_seconds: float = Field(default=300.0, gt=0.0)
    relogin_timeout_seconds: float | None = Field(default=None, gt=0.0)
    retry: RetrySection = Field(default_factory=RetrySection)
    cleanup: CleanupSection = Field(default_factory=CleanupSection)
    backend: BackendSection = Field(default_factory=BackendSection)
    log: LogSection = Field(default_factory=LogSection)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """base と override をディープマージして新しい辞書を返す。

    override の値が優先される。リストは置換（マージしない）。
    """
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    """YAML ファイルを読み込む。"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            code=SessionLifecycleErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data: dict[str, Any] = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            code=SessionLifecycleErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    return data


def load(base_path: Path, env_path: Path | None = None) -> SessionLifecycleConfig:
    """設定ファイルを読み込んで SessionLifecycleConfig を返す。

    base_path: ベース設定ファイルパス（必須）
    env_path: 環境別設定ファイルパス（オプション）。存在する場合はベースにマージ。
    """
    data = _read_yaml(base_path)
    if env_path is not None and env_path.exists():
        data = deep_merge(data, _read_yaml(env_path))
    try:
        return SessionLifecycleConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            code=SessionLifecycleErrorCodes.CONFIG_VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
