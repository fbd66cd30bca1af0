"""
Directory Client - user profile lookup for engine requests.

Profile attributes of the sender (name, mail, department, ...) are fetched
from the directory API and forwarded to the engine as request parameters.
Which attributes are fetched is configured as a comma separated list of
attribute names (CHAT_BRIDGE_DIRECTORY_REQUEST_PARAMS).

Authentication uses the OAuth2 client-credentials grant; the access token
is cached until shortly before it expires.

A lookup never fails the turn: any error is logged and yields an empty
profile.

Pattern: Client adapter for microservice communication
"""

import logging
import time
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from chat_bridge.clients.http import create_http_client
from chat_bridge.core.config import Settings

logger = logging.getLogger(__name__)

DIRECTORY_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_EXPIRY_MARGIN_SECONDS = 60.0


# =============================================================================
# Profile Attributes
# =============================================================================


class ProfileAttribute(Enum):
    """
    Directory user attributes that can be forwarded to the engine.

    Each member maps the configured attribute name to the engine parameter
    name and the property of the directory user JSON object.
    """

    USER_PRINCIPAL_NAME = ("UserPrincipalName", "userPrincipalName", "userPrincipalName")
    GIVEN_NAME = ("GivenName", "givenName", "givenName")
    SURNAME = ("Surname", "surname", "surname")
    MAIL = ("Mail", "email", "mail")
    DEPARTMENT = ("Department", "department", "department")
    EMPLOYEE_ID = ("EmployeeId", "employeeId", "employeeId")
    AGE_GROUP = ("AgeGroup", "ageGroup", "ageGroup")
    CITY = ("City", "city", "city")
    COMPANY_NAME = ("CompanyName", "companyName", "companyName")
    CONSENT_PROVIDED_FOR_MINOR = (
        "ConsentProvidedForMinor",
        "consentProvidedForMinor",
        "consentProvidedForMinor",
    )
    COUNTRY = ("Country", "country", "country")
    DISPLAY_NAME = ("DisplayName", "displayName", "displayName")
    EMPLOYEE_TYPE = ("EmployeeType", "employeeType", "employeeType")
    EXTERNAL_USER_STATE = ("ExternalUserState", "externalUserState", "externalUserState")
    FAX_NUMBER = ("FaxNumber", "faxNumber", "faxNumber")
    JOB_TITLE = ("JobTitle", "jobTitle", "jobTitle")
    LEGAL_AGE_GROUP_CLASSIFICATION = (
        "LegalAgeGroupClassification",
        "legalAgeGroupClassification",
        "legalAgeGroupClassification",
    )
    MAIL_NICKNAME = ("MailNickname", "mailNickname", "mailNickname")
    MOBILE_PHONE = ("MobilePhone", "mobilePhone", "mobilePhone")
    OFFICE_LOCATION = ("OfficeLocation", "officeLocation", "officeLocation")
    POSTAL_CODE = ("PostalCode", "postalCode", "postalCode")
    PREFERRED_LANGUAGE = ("PreferredLanguage", "preferredLanguage", "preferredLanguage")
    STATE = ("State", "state", "state")
    STREET_ADDRESS = ("StreetAddress", "streetAddress", "streetAddress")
    USER_TYPE = ("UserType", "userType", "userType")
    USAGE_LOCATION = ("UsageLocation", "usageLocation", "usageLocation")
    MY_SITE = ("MySite", "mySite", "mySite")
    ABOUT_ME = ("AboutMe", "aboutMe", "aboutMe")
    PREFERRED_NAME = ("PreferredName", "preferredName", "preferredName")

    def __init__(self, attribute_name: str, param_name: str, json_property: str) -> None:
        self.attribute_name = attribute_name
        self.param_name = param_name
        self.json_property = json_property

    @classmethod
    def find_by_name(cls, name: str) -> Optional["ProfileAttribute"]:
        """Look up an attribute by its configured name, ignoring case."""
        wanted = name.strip().lower()
        for attribute in cls:
            if attribute.attribute_name.lower() == wanted:
                return attribute
        return None


def parse_profile_attributes(csv: str) -> list[ProfileAttribute]:
    """
    Resolve a comma separated list of attribute names.

    Unknown names are logged and skipped; blank entries are ignored.

    Example:
        >>> parse_profile_attributes("GivenName, mail")
        [<ProfileAttribute.GIVEN_NAME: ...>, <ProfileAttribute.MAIL: ...>]
    """
    attributes: list[ProfileAttribute] = []
    for part in (csv or "").split(","):
        if not part.strip():
            continue
        attribute = ProfileAttribute.find_by_name(part)
        if attribute is None:
            logger.warning("Profile attribute with name %s not found", part.strip())
        elif attribute not in attributes:
            attributes.append(attribute)
    return attributes


def profile_params(
    profile: dict[str, Any], attributes: list[ProfileAttribute]
) -> dict[str, Any]:
    """Engine parameters for the attributes present in a directory profile."""
    return {
        attribute.param_name: profile[attribute.json_property]
        for attribute in attributes
        if profile.get(attribute.json_property) is not None
    }


# =============================================================================
# Token Model
# =============================================================================


class AccessToken(BaseModel):
    """OAuth2 token endpoint response (the fields the client uses)."""

    access_token: str = Field(..., description="Bearer token")
    expires_in: int = Field(default=3600, description="Lifetime in seconds")


# =============================================================================
# DirectoryClient
# =============================================================================


class DirectoryClient:
    """
    Client for directory user lookups.

    Example:
        >>> client = DirectoryClient(settings)
        >>> profile = await client.get_user("aad-object-id")
        >>> profile_params(profile, client.attributes)
        {'givenName': 'Ada', 'email': 'ada@example.com'}
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize DirectoryClient.

        Args:
            settings: Application settings (credentials, URLs, attributes)
            http_client: Optional pre-configured HTTP client (for testing)
        """
        self._settings = settings
        self._attributes = parse_profile_attributes(settings.directory_request_params)
        self._select = ",".join(attribute.json_property for attribute in self._attributes)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

        if http_client is not None:
            self._client = http_client
            self._owns_client = False
        else:
            self._client = create_http_client()
            self._owns_client = True

    @property
    def attributes(self) -> list[ProfileAttribute]:
        return list(self._attributes)

    @property
    def enabled(self) -> bool:
        """Credentials are configured and at least one attribute is requested."""
        return self._settings.directory_enabled and bool(self._attributes)

    async def close(self) -> None:
        """Close the HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "DirectoryClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # =========================================================================
    # Lookup
    # =========================================================================

    async def get_user(self, user_id: Optional[str]) -> dict[str, Any]:
        """
        Fetch the configured attributes of a directory user.

        Args:
            user_id: Directory object id of the user.

        Returns:
            The user JSON object, or an empty dict if the user id is None,
            the client is not enabled, or the lookup failed.
        """
        if not self.enabled:
            return {}
        if user_id is None:
            logger.error("User id is null")
            return {}

        try:
            token = await self._get_token()
            response = await self._client.get(
                f"{self._settings.directory_base_url.rstrip('/')}/users/{quote(user_id, safe='')}",
                params={"$select": self._select},
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            profile = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to get user %s from the directory: %s", user_id, e)
            return {}

        if not isinstance(profile, dict):
            logger.error("Directory returned a non-object profile for user %s", user_id)
            return {}
        logger.debug("Got user info from the directory for %s: %s", user_id, profile)
        return profile

    async def _get_token(self) -> str:
        if self._token is not None and time.monotonic() < self._token_expires_at:
            return self._token

        token_url = self._settings.directory_token_url.format(
            tenant_id=self._settings.microsoft_tenant_id
        )
        response = await self._client.post(
            token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self._settings.microsoft_app_id,
                "client_secret": self._settings.microsoft_app_password.get_secret_value(),
                "scope": DIRECTORY_SCOPE,
            },
        )
        response.raise_for_status()
        token = AccessToken.model_validate(response.json())
        self._token = token.access_token
        self._token_expires_at = time.monotonic() + max(
            0.0, token.expires_in - TOKEN_EXPIRY_MARGIN_SECONDS
        )
        return self._token
