"""
Configuration management with environment overrides

Priority: explicit overrides > environment variables > defaults
"""

import os
import socket
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from srvmetric.core.exceptions import ConfigurationError

# Environment variable -> config field
ENV_OVERRIDES = {
    "SRVMETRIC_NAME": "name",
    "SRVMETRIC_LOG_DIR": "log_dir",
    "SRVMETRIC_LOG_INTERVAL": "log_interval",
    "SRVMETRIC_APDEX_SATISFIED": "apdex_satisfied",
}


@dataclass
class MetricConfig:
    """
    Metric sampler configuration.

    Attributes:
        name: Application name written into every record (default: hostname)
        log_dir: Output directory; None disables persistence and keeps
            records in memory only
        log_interval: Sampling interval in seconds
        apdex_satisfied: Requests slower than this (milliseconds) count as
            "tolerated"
        file_prefix: Log file name prefix ({prefix}-metric.{date}.log)
        max_bytes: Size rollover threshold per file, 0 disables it
        backup_count: Rolled-over files kept per day
        shutdown_timeout: Seconds to wait for pending writes on shutdown
        enable_process_title: Show the latest figures in the process title
    """

    class ParamSchema(BaseModel):
        """Pydantic schema for sampler parameters."""
        name: Optional[str] = Field(None, min_length=1, description="애플리케이션 이름 (기본값: 호스트명)")
        log_dir: Optional[str] = Field(None, description="기록 디렉터리 (None = 메모리에만 보관)")
        log_interval: float = Field(10.0, gt=0, description="샘플링 간격 (초)")
        apdex_satisfied: float = Field(100.0, ge=0, description="apdex 기준값 (밀리초)")
        file_prefix: str = Field("srvmetric", pattern=r"^[\w.-]+$", description="로그 파일 이름 접두사")
        max_bytes: int = Field(0, ge=0, description="파일당 최대 크기 (0 = 크기 롤오버 없음)")
        backup_count: int = Field(5, ge=0, description="일자별 보관 백업 파일 수")
        shutdown_timeout: float = Field(2.0, ge=0, description="종료 시 대기 기록 최대 대기 시간 (초)")
        enable_process_title: bool = Field(False, description="프로세스 제목에 최근 지표 표시")

    @classmethod
    def from_validated_params(cls, params: "MetricConfig.ParamSchema") -> "MetricConfig":
        """Create instance from Pydantic-validated params."""
        return cls(**params.model_dump())

    name: Optional[str] = None
    log_dir: Optional[str] = None
    log_interval: float = 10.0
    apdex_satisfied: float = 100.0
    file_prefix: str = "srvmetric"
    max_bytes: int = 0
    backup_count: int = 5
    shutdown_timeout: float = 2.0
    enable_process_title: bool = False

    def __post_init__(self):
        if not self.name:
            self.name = socket.gethostname()

    @property
    def persistence_enabled(self) -> bool:
        return self.log_dir is not None

    @property
    def apdex_satisfied_seconds(self) -> float:
        return self.apdex_satisfied / 1000.0


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> MetricConfig:
    """
    Build a validated MetricConfig.

    Args:
        overrides: Explicit values, highest priority
        environ: Environment mapping (default: os.environ)

    Raises:
        ConfigurationError: If any value fails validation
    """
    environ = os.environ if environ is None else environ

    params: Dict[str, Any] = {}
    for env_key, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_key)
        if value:
            params[field_name] = value

    if overrides:
        unknown = set(overrides) - set(MetricConfig.ParamSchema.model_fields)
        if unknown:
            raise ConfigurationError(f"Unknown metric options: {sorted(unknown)}")
        params.update(overrides)

    if isinstance(params.get("log_dir"), os.PathLike):
        params["log_dir"] = os.fspath(params["log_dir"])

    try:
        validated = MetricConfig.ParamSchema(**params)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid metric configuration: {e}") from e

    return MetricConfig.from_validated_params(validated)
