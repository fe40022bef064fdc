from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

_TRUE = {"1", "true", "yes", "on"}


def _parse_list(env_value: Optional[str], default: List[str]) -> List[str]:
    """
    Parses comma-separated values:
      NOTIFY_CHANNELS="resend,sendgrid"
    Empty/None -> default list.
    """
    if not env_value:
        return list(default)
    parts = [p.strip() for p in env_value.split(",")]
    return [p for p in parts if p]


def _parse_bool(env_value: Optional[str], default: bool = False) -> bool:
    if env_value is None or env_value.strip() == "":
        return default
    return env_value.strip().lower() in _TRUE


def _parse_float(env_value: Optional[str], default: float) -> float:
    try:
        return float(env_value) if env_value else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Dataverse
    dataverse_url: str = ""
    dataverse_api_version: str = "v9.2"
    azure_tenant_id: str = ""
    azure_client_id: str = ""
    azure_client_secret: str = ""
    http_timeout_seconds: float = 30.0

    # Templates
    templates_path: Path = Path(__file__).resolve().parents[1] / "templates"
    document_type: str = "AuthorisedIndividual"
    template_version: str = "1.0"

    # Conversion
    pdf_conversion_engine: str = "libreoffice"
    conversion_timeout_seconds: float = 60.0
    graph_tenant_id: str = ""
    graph_client_id: str = ""
    graph_client_secret: str = ""
    graph_site_id: str = ""
    graph_drive_id: str = ""
    graph_user_id: str = ""

    # Storage
    storage_type: str = "local"
    storage_local_path: Path = Path(__file__).resolve().parents[1] / "data" / "artifacts"
    s3_bucket: str = ""
    s3_endpoint_url: Optional[str] = None
    aws_region: str = "us-east-1"

    # Notification
    notify_channels: List[str] = field(
        default_factory=lambda: ["resend", "sendgrid", "ses"]
    )
    notify_skip_unhealthy: bool = False
    email_from: str = ""
    sendgrid_api_key: str = ""
    resend_api_key: str = ""
    aws_ses_access_key_id: str = ""
    aws_ses_secret_access_key: str = ""
    aws_ses_region: str = "us-east-1"

    # HTTP surface
    cors_allow_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )
    log_level: str = "INFO"

    @property
    def dataverse_api_url(self) -> str:
        return f"{self.dataverse_url.rstrip('/')}/api/data/{self.dataverse_api_version}"

    @property
    def dataverse_configured(self) -> bool:
        return bool(
            self.dataverse_url
            and self.azure_tenant_id
            and self.azure_client_id
            and self.azure_client_secret
        )

    @property
    def graph_configured(self) -> bool:
        return bool(
            self.graph_tenant_id
            and self.graph_client_id
            and self.graph_client_secret
            and (self.graph_drive_id or self.graph_user_id)
        )

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        defaults = cls()
        return cls(
            dataverse_url=env.get("DATAVERSE_URL", ""),
            dataverse_api_version=env.get("DATAVERSE_API_VERSION", defaults.dataverse_api_version),
            azure_tenant_id=env.get("AZURE_TENANT_ID", ""),
            azure_client_id=env.get("AZURE_CLIENT_ID", ""),
            azure_client_secret=env.get("AZURE_CLIENT_SECRET", ""),
            http_timeout_seconds=_parse_float(
                env.get("HTTP_TIMEOUT_SECONDS"), defaults.http_timeout_seconds
            ),
            templates_path=Path(env["TEMPLATES_PATH"]) if env.get("TEMPLATES_PATH") else defaults.templates_path,
            document_type=env.get("DOCUMENT_TYPE", defaults.document_type),
            template_version=env.get("TEMPLATE_VERSION", defaults.template_version),
            pdf_conversion_engine=env.get("PDF_CONVERSION_ENGINE", defaults.pdf_conversion_engine).lower(),
            conversion_timeout_seconds=_parse_float(
                env.get("CONVERSION_TIMEOUT_SECONDS"), defaults.conversion_timeout_seconds
            ),
            # Graph falls back to the Dataverse app registration
            graph_tenant_id=env.get("GRAPH_TENANT_ID") or env.get("AZURE_TENANT_ID", ""),
            graph_client_id=env.get("GRAPH_CLIENT_ID") or env.get("AZURE_CLIENT_ID", ""),
            graph_client_secret=env.get("GRAPH_CLIENT_SECRET") or env.get("AZURE_CLIENT_SECRET", ""),
            graph_site_id=env.get("GRAPH_SITE_ID", ""),
            graph_drive_id=env.get("GRAPH_DRIVE_ID", ""),
            graph_user_id=env.get("GRAPH_USER_ID", ""),
            storage_type=env.get("STORAGE_TYPE", defaults.storage_type).lower(),
            storage_local_path=(
                Path(env["STORAGE_LOCAL_PATH"]) if env.get("STORAGE_LOCAL_PATH") else defaults.storage_local_path
            ),
            s3_bucket=env.get("S3_BUCKET", ""),
            s3_endpoint_url=env.get("S3_ENDPOINT_URL") or None,
            aws_region=env.get("AWS_REGION", defaults.aws_region),
            notify_channels=_parse_list(env.get("NOTIFY_CHANNELS"), defaults.notify_channels),
            notify_skip_unhealthy=_parse_bool(env.get("NOTIFY_SKIP_UNHEALTHY")),
            email_from=env.get("EMAIL_FROM", ""),
            sendgrid_api_key=env.get("SENDGRID_API_KEY", ""),
            resend_api_key=env.get("RESEND_API_KEY", ""),
            aws_ses_access_key_id=env.get("AWS_SES_ACCESS_KEY_ID", ""),
            aws_ses_secret_access_key=env.get("AWS_SES_SECRET_ACCESS_KEY", ""),
            aws_ses_region=env.get("AWS_SES_REGION", defaults.aws_ses_region),
            cors_allow_origins=_parse_list(env.get("CORS_ALLOW_ORIGINS"), defaults.cors_allow_origins),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        )
