"""SSL certificate tools for the Forge MCP server."""

import logging
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict

from forge_mcp.actions import ActionParams, ConfirmedAction, SummaryBuilder, identifier
from forge_mcp.forge_api import HttpMethod, call_forge_api, fetch_result
from forge_mcp.registry import ToolRegistrar
from forge_mcp.tools.sites import site_path

logger = logging.getLogger(__name__)


class DnsProvider(BaseModel):
    """DNS provider credentials for DNS-01 (wildcard) Let's Encrypt validation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["cloudflare", "route53", "digitalocean", "dnssimple", "linode", "ovh", "google"]
    cloudflare_api_token: str | None = None
    route53_key: str | None = None
    route53_secret: str | None = None
    digitalocean_token: str | None = None
    dnssimple_token: str | None = None
    linode_token: str | None = None
    ovh_endpoint: str | None = None
    ovh_app_key: str | None = None
    ovh_app_secret: str | None = None
    ovh_consumer_key: str | None = None
    google_credentials_file: str | None = None

    def has_credentials(self) -> bool:
        return any(value for name, value in self.model_dump().items() if name != "type")


@dataclass(frozen=True)
class LetsEncryptParams(ActionParams):
    server_id: str = identifier()
    server_name: str
    site_id: str = identifier()
    site_name: str
    domains: tuple[str, ...]
    dns_provider: DnsProvider | None = None


@dataclass(frozen=True)
class CertificateTarget(ActionParams):
    server_id: str = identifier()
    server_name: str
    site_id: str = identifier()
    site_name: str
    certificate_id: str = identifier()


def _summarize_lets_encrypt(p: LetsEncryptParams) -> str:
    summary = (
        SummaryBuilder("Request a Let's Encrypt certificate?")
        .named("Server", p.server_name, p.server_id)
        .named("Site", p.site_name, p.site_id)
        .add("Domains", p.domains)
    )
    if p.dns_provider is not None:
        summary.add("DNS provider", p.dns_provider.type)
        summary.secret("DNS credentials", p.dns_provider.has_credentials())
    return summary.build()


async def _create_lets_encrypt(p: LetsEncryptParams, api_key: str):
    payload: dict = {"domains": list(p.domains)}
    if p.dns_provider is not None:
        payload["dns_provider"] = p.dns_provider.model_dump(exclude_none=True)
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/certificates/letsencrypt",
        HttpMethod.POST, api_key, payload,
    )


def _summarize_certificate(headline: str):
    def summarize(p: CertificateTarget) -> str:
        return (
            SummaryBuilder(headline)
            .named("Server", p.server_name, p.server_id)
            .named("Site", p.site_name, p.site_id)
            .add("Certificate ID", p.certificate_id)
            .build()
        )

    return summarize


async def _activate(p: CertificateTarget, api_key: str):
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/certificates/{p.certificate_id}/activate",
        HttpMethod.POST, api_key,
    )


async def _delete(p: CertificateTarget, api_key: str):
    return await call_forge_api(
        f"{site_path(p.server_id, p.site_id)}/certificates/{p.certificate_id}",
        HttpMethod.DELETE, api_key,
    )


def register_tools(registrar: ToolRegistrar, api_key: str) -> None:
    """Register all certificate tools with the MCP server."""

    @registrar.tool(title="List Certificates")
    async def list_certificates(server_id: str | int, site_id: str | int):
        """List the SSL certificates of a site.

        Args:
            server_id: The ID of the server.
            site_id: The ID of the site.
        """
        return await fetch_result(f"{site_path(server_id, site_id)}/certificates", api_key)

    @registrar.tool(title="Get Certificate")
    async def get_certificate(server_id: str | int, site_id: str | int, certificate_id: str | int):
        """Get one SSL certificate of a site."""
        return await fetch_result(
            f"{site_path(server_id, site_id)}/certificates/{certificate_id}", api_key
        )

    lets_encrypt_action = ConfirmedAction(
        "create_lets_encrypt_certificate",
        summarize=_summarize_lets_encrypt,
        perform=_create_lets_encrypt,
    )

    @registrar.propose(lets_encrypt_action, title="Create Let's Encrypt Certificate")
    async def confirm_create_lets_encrypt_certificate(
        server_id: str | int,
        server_name: str,
        site_id: str | int,
        site_name: str,
        domains: list[str],
        dns_provider: DnsProvider | None = None,
    ):
        """Propose requesting a Let's Encrypt certificate. Requests nothing.

        Show the returned summary to the user and, only after explicit
        approval, call create_lets_encrypt_certificate with the same values and
        the token.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            site_id: The ID of the site.
            site_name: The domain of the site, shown to the user.
            domains: Domains the certificate must cover, in order.
            dns_provider: DNS provider settings, needed for wildcard domains.
        """
        return lets_encrypt_action.propose(LetsEncryptParams(
            server_id=server_id, server_name=server_name, site_id=site_id,
            site_name=site_name, domains=domains, dns_provider=dns_provider,
        ))

    @registrar.execute(lets_encrypt_action, title="Create Let's Encrypt Certificate")
    async def create_lets_encrypt_certificate(
        server_id: str | int,
        server_name: str,
        site_id: str | int,
        site_name: str,
        domains: list[str],
        dns_provider: DnsProvider | None = None,
        *,
        token: str,
    ):
        """Request the certificate after approval of confirm_create_lets_encrypt_certificate.

        Args:
            token: Token returned by confirm_create_lets_encrypt_certificate.
        """
        return await lets_encrypt_action.execute(LetsEncryptParams(
            server_id=server_id, server_name=server_name, site_id=site_id,
            site_name=site_name, domains=domains, dns_provider=dns_provider,
        ), token, api_key)

    activate_action = ConfirmedAction(
        "activate_certificate",
        summarize=_summarize_certificate("Activate this certificate for the site?"),
        perform=_activate,
    )
    delete_action = ConfirmedAction(
        "delete_certificate",
        summarize=_summarize_certificate("Delete this certificate?"),
        perform=_delete,
        destructive=True,
    )
    _register_certificate_pair(registrar, api_key, activate_action, "Activate Certificate")
    _register_certificate_pair(registrar, api_key, delete_action, "Delete Certificate")


def _register_certificate_pair(
    registrar: ToolRegistrar, api_key: str, action: ConfirmedAction, title: str
) -> None:
    @registrar.propose(action, title=title)
    async def propose(
        server_id: str | int,
        server_name: str,
        site_id: str | int,
        site_name: str,
        certificate_id: str | int,
    ):
        """Propose a change to one certificate of a site. Changes nothing.

        Args:
            server_id: The ID of the server.
            server_name: The name of the server, shown to the user.
            site_id: The ID of the site.
            site_name: The domain of the site, shown to the user.
            certificate_id: The ID of the certificate (see list_certificates).
        """
        return action.propose(CertificateTarget(
            server_id=server_id, server_name=server_name, site_id=site_id,
            site_name=site_name, certificate_id=certificate_id,
        ))

    @registrar.execute(action, title=title)
    async def execute(
        server_id: str | int,
        server_name: str,
        site_id: str | int,
        site_name: str,
        certificate_id: str | int,
        token: str,
    ):
        """Apply the approved certificate change.

        Args:
            token: Token returned by the confirm tool.
        """
        return await action.execute(CertificateTarget(
            server_id=server_id, server_name=server_name, site_id=site_id,
            site_name=site_name, certificate_id=certificate_id,
        ), token, api_key)
