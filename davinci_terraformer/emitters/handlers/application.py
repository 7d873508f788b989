"""DaVinci application handler for Terraform emission.

Handles: ResourceKind.APPLICATION
Emits: pingone_davinci_application
"""

import logging
from typing import Any, ClassVar, Dict, List, Set, Tuple

from ...hcl import HclWriter, format_hcl_value, format_number, quote_string
from ...resolver.schema import ResourceKind
from ..base_handler import ConvertedBlock, ResourceHandler
from ..context import ConversionContext
from . import handler

logger = logging.getLogger(__name__)

# (document key, HCL attribute) for list-valued OAuth settings
_OAUTH_LISTS = (
    ("grantTypes", "grant_types"),
    ("redirectUris", "redirect_uris"),
    ("logoutUris", "logout_uris"),
    ("scopes", "scopes"),
)


@handler
class ApplicationHandler(ResourceHandler):
    """Handler for DaVinci applications.

    The API key value is never written; the provider generates a new one.
    """

    KIND = ResourceKind.APPLICATION
    TERRAFORM_TYPES: ClassVar[Set[str]] = {"pingone_davinci_application"}

    def emit(
        self, document: Dict[str, Any], context: ConversionContext
    ) -> ConvertedBlock:
        name = self.require_string(document, "name", "application name")
        resource_id = self.resource_id(document)
        resource_name = context.resource_name(self.KIND, resource_id)

        writer = HclWriter()
        with self.open_resource(writer, "pingone_davinci_application", resource_name):
            self.write_environment(writer, context)
            writer.blank()
            writer.attribute("name", quote_string(name))

            api_key = document.get("apiKey")
            if isinstance(api_key, dict):
                writer.blank()
                with writer.block("api_key =", "{"):
                    if isinstance(api_key.get("enabled"), bool):
                        writer.attribute("enabled", format_number(api_key["enabled"]))

            oauth = document.get("oauth")
            if isinstance(oauth, dict):
                writer.blank()
                with writer.block("oauth =", "{"):
                    writer.attributes(self._oauth_pairs(oauth))

        logger.debug(f"Application '{name}' emitted as {resource_name}")
        return ConvertedBlock(
            kind=self.KIND,
            resource_id=resource_id,
            name=resource_name,
            hcl=writer.render(),
        )

    def _oauth_pairs(self, oauth: Dict[str, Any]) -> List[Tuple[str, str]]:
        pairs: List[Tuple[str, str]] = []
        for key, attribute in _OAUTH_LISTS:
            values = oauth.get(key)
            if isinstance(values, list) and values:
                pairs.append((attribute, format_hcl_value([str(v) for v in values])))

        if isinstance(oauth.get("enforceSignedRequestOpenid"), bool):
            pairs.append(
                (
                    "enforce_signed_request_openid",
                    format_number(oauth["enforceSignedRequestOpenid"]),
                )
            )
        sp_jwks_openid = self.get_string(oauth, "spJwksOpenid")
        if sp_jwks_openid:
            pairs.append(("sp_jwks_openid", quote_string(sp_jwks_openid)))
        # The API spells this key with a lowercase "jwks"
        sp_jwks_url = self.get_string(oauth, "spjwksUrl")
        if sp_jwks_url:
            pairs.append(("sp_jwks_url", quote_string(sp_jwks_url)))
        return pairs
