"""
Configuration module for PR Analyzer.

Two layers of configuration:
- Settings: process-level options loaded from environment variables / .env
- ProjectConfig: analyzer rules and thresholds loaded from .pr-analyzer.toml

Every value has a built-in default, so the tool works with zero config.
"""

import logging
import tomllib
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pr_analyzer.review.schemas import RiskLevel

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the project configuration file cannot be loaded."""
    pass


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Secrets are loaded from environment or .env file.
    Never commit secrets to version control.
    """

    # Application
    ENVIRONMENT: str = "development"

    # GitHub
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT_SECONDS: int = 30

    # Limits
    MAX_DIFF_SIZE_BYTES: int = 5_000_000  # 5MB
    ANALYSIS_TIMEOUT_SECONDS: Optional[float] = 60.0

    # Project configuration file
    CONFIG_FILE: str = ".pr-analyzer.toml"

    # Observability
    LOG_LEVEL: str = "WARNING"
    LOG_FORMAT: str = "text"

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only text and json formatters exist."""
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# ============================================================================
# Analyzer rules
# ============================================================================

class PatternRule(BaseModel):
    """A regex rule matched against added diff lines."""

    id: str
    pattern: str
    message: str
    severity: RiskLevel = RiskLevel.MEDIUM
    file_globs: List[str] = Field(default_factory=list)
    skip_test_files: bool = False
    skip_comments: bool = False
    case_sensitive: bool = True


DEFAULT_SECURITY_RULES: List[PatternRule] = [
    # SQL injection
    PatternRule(
        id="sql-injection-interpolation",
        pattern=r"\b(?:SELECT|INSERT|UPDATE|DELETE)\s[^\"\n]*(?:\{\w*\}|\$\{)",
        message="Possible SQL injection: raw SQL query construction with string interpolation",
        severity=RiskLevel.HIGH,
        case_sensitive=False,
    ),
    PatternRule(
        id="sql-injection-concatenation",
        pattern=r"\b(?:SELECT|WHERE)\s.*(?:[\"']\s*\+\s*\w|\w\s*\+\s*[\"'])",
        message="Possible SQL injection: SQL query built by string concatenation",
        severity=RiskLevel.HIGH,
        case_sensitive=False,
    ),
    # Hardcoded secrets
    PatternRule(
        id="hardcoded-credential",
        pattern=r"\b\w*(?:password|passwd|secret|api[_-]?key|token)[\"']?(?:\s*:\s*&?(?:'static\s+)?\w+)?\s*[:=]\s*[\"'][^\"']+[\"']",
        message="Hardcoded credential detected",
        severity=RiskLevel.HIGH,
        case_sensitive=False,
    ),
    PatternRule(
        id="aws-access-key",
        pattern=r"\bAKIA[0-9A-Z]{16}\b",
        message="AWS access key detected",
        severity=RiskLevel.HIGH,
    ),
    PatternRule(
        id="private-key",
        pattern=r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----",
        message="Private key committed to the repository",
        severity=RiskLevel.HIGH,
    ),
    # Command / code injection
    PatternRule(
        id="shell-true",
        pattern=r"\bshell\s*=\s*True\b",
        message="Possible command injection: subprocess with shell=True",
        severity=RiskLevel.HIGH,
    ),
    PatternRule(
        id="os-system",
        pattern=r"\bos\.system\(",
        message="Possible command injection: os.system call",
        severity=RiskLevel.HIGH,
    ),
    PatternRule(
        id="dynamic-command",
        pattern=r"Command::new\(.*(?:format!|&)",
        message="Possible command injection: Command::new with dynamic arguments",
        severity=RiskLevel.HIGH,
    ),
    PatternRule(
        id="eval-exec",
        pattern=r"(?<![\w.])(?:eval|exec)\(",
        message="Possible code injection: eval/exec usage detected",
        severity=RiskLevel.HIGH,
        skip_comments=True,
    ),
    # Unsafe code
    PatternRule(
        id="rust-unsafe",
        pattern=r"\bunsafe\s*(?:\{|fn\b|impl\b)",
        message="New unsafe block introduced",
        severity=RiskLevel.MEDIUM,
        skip_comments=True,
    ),
    PatternRule(
        id="pickle-load",
        pattern=r"\bpickle\.loads?\(",
        message="Deserialization of untrusted data with pickle",
        severity=RiskLevel.MEDIUM,
    ),
    PatternRule(
        id="yaml-unsafe-load",
        pattern=r"\byaml\.load\((?!.*SafeLoader)",
        message="yaml.load without a safe loader",
        severity=RiskLevel.MEDIUM,
    ),
    PatternRule(
        id="tls-verify-disabled",
        pattern=r"\bverify\s*=\s*False\b",
        message="TLS certificate verification disabled",
        severity=RiskLevel.MEDIUM,
    ),
    PatternRule(
        id="html-injection",
        pattern=r"\.innerHTML\s*=|dangerouslySetInnerHTML",
        message="Raw HTML injection sink (possible XSS)",
        severity=RiskLevel.MEDIUM,
    ),
]


DEFAULT_STYLE_RULES: List[PatternRule] = [
    PatternRule(
        id="rust-unwrap",
        pattern=r"\.unwrap\(\)",
        message="Use of .unwrap() - prefer ? operator or .expect() with context",
        severity=RiskLevel.MEDIUM,
        file_globs=["*.rs"],
        skip_test_files=True,
        skip_comments=True,
    ),
    PatternRule(
        id="bare-except",
        pattern=r"^\s*except\s*:",
        message="Bare except clause - catch a specific exception type",
        severity=RiskLevel.MEDIUM,
        file_globs=["*.py"],
    ),
    PatternRule(
        id="todo-macro",
        pattern=r"\btodo!\(",
        message="todo!() macro found - should not ship to production",
        severity=RiskLevel.MEDIUM,
        skip_comments=True,
    ),
    PatternRule(
        id="unimplemented-macro",
        pattern=r"\bunimplemented!\(",
        message="unimplemented!() macro found - should not ship to production",
        severity=RiskLevel.MEDIUM,
        skip_comments=True,
    ),
    PatternRule(
        id="fixme-comment",
        pattern=r"^\s*(?://|#)\s*FIXME",
        message="FIXME comment found - indicates known issue",
        severity=RiskLevel.LOW,
        case_sensitive=False,
    ),
    PatternRule(
        id="redundant-clone",
        pattern=r"\.to_(?:string|owned)\(\)\.clone\(\)",
        message="Redundant clone: .to_string().clone() or .to_owned().clone()",
        severity=RiskLevel.LOW,
        file_globs=["*.rs"],
    ),
]


DEFAULT_PUBLIC_API_PATTERNS: List[str] = [
    r"^pub\s+(?:async\s+)?(?:fn|struct|enum|trait|type)\s",
    r"^(?:async\s+)?def\s+[A-Za-z]\w*\s*\(",
    r"^class\s+[A-Za-z]\w*",
    r"^export\s+(?:default\s+)?(?:async\s+)?(?:function|class|const|interface|type|enum)\b",
]


class SecurityConfig(BaseModel):
    """Security analyzer configuration."""

    rules: List[PatternRule] = Field(default_factory=lambda: list(DEFAULT_SECURITY_RULES))
    # Additional regex patterns to flag as security risks
    patterns: List[str] = Field(default_factory=list)


class ComplexityConfig(BaseModel):
    """Complexity analyzer thresholds."""

    large_change: int = Field(default=200, ge=0)
    very_large_change: int = Field(default=500, ge=0)
    many_files: int = Field(default=10, ge=0)
    very_many_files: int = Field(default=20, ge=0)
    large_file_change: int = Field(default=300, ge=0)
    dependency_medium: int = Field(default=3, ge=1)
    dependency_high: int = Field(default=5, ge=1)
    public_api_items: int = Field(default=10, ge=0)
    max_indent_level: int = Field(default=4, ge=1)
    indent_width: int = Field(default=4, ge=1)
    public_api_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PUBLIC_API_PATTERNS)
    )


class StyleConfig(BaseModel):
    """Style & architecture analyzer configuration."""

    # Architectural layers, outermost first (e.g. ["api", "domain", "infra"])
    layers: List[str] = Field(default_factory=list)
    direction: Literal["inward", "outward"] = "inward"
    max_line_length: int = Field(default=120, ge=1)
    rules: List[PatternRule] = Field(default_factory=lambda: list(DEFAULT_STYLE_RULES))

    @field_validator("layers")
    @classmethod
    def validate_layers(cls, v: List[str]) -> List[str]:
        """Layer names must be unique and non-empty."""
        cleaned = [layer.strip() for layer in v]
        if any(not layer for layer in cleaned):
            raise ValueError("layer names must not be empty")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("layer names must be unique")
        return cleaned


class GitHubConfig(BaseModel):
    """GitHub settings from the project config file."""

    token: Optional[str] = None


class ProjectConfig(BaseModel):
    """Top-level contents of .pr-analyzer.toml."""

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    complexity: ComplexityConfig = Field(default_factory=ComplexityConfig)
    style: StyleConfig = Field(default_factory=StyleConfig)


def load_project_config(path: Optional[Union[str, Path]] = None) -> ProjectConfig:
    """
    Load project configuration from a TOML file.

    Args:
        path: Config file path (defaults to settings.CONFIG_FILE)

    Returns:
        ProjectConfig: Parsed configuration, or defaults if the file is absent

    Raises:
        ConfigError: If the file exists but cannot be read or validated
    """
    explicit = path is not None
    config_path = Path(path if explicit else settings.CONFIG_FILE)

    if not config_path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.debug("No config file found, using defaults", extra={"path": str(config_path)})
        return ProjectConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    try:
        config = ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    logger.info(
        "Loaded project config",
        extra={
            "path": str(config_path),
            "extra_security_patterns": len(config.security.patterns),
            "layers": len(config.style.layers),
        }
    )
    return config


def resolve_github_token(config: ProjectConfig, app_settings: Optional[Settings] = None) -> Optional[str]:
    """
    Resolve the GitHub token.

    The config file value takes precedence, then GITHUB_TOKEN.
    """
    if config.github.token:
        return config.github.token
    return (app_settings or settings).GITHUB_TOKEN


# Global settings instance
settings = Settings()
