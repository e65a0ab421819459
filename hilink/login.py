"""SCRAM login to the HiLink web interface.

The login is a fixed sequence of round trips, each depending on the previous
one:

session: ``GET /`` so the device sets its ``SessionID`` cookie.

token: ``GET /api/webserver/token``. The first 32 characters of the returned
token are noise; the remainder is sent as ``__RequestVerificationToken``.

challenge: ``POST /api/user/challenge_login`` with the username and a random
client nonce. The device answers with its server nonce, the PBKDF2 salt and
iteration count, and a fresh verification token in the response header.

authentication: ``POST /api/user/authentication_login`` with the client
proof. The device answers with its server signature and its RSA public key
signed with the server key. Some firmwares rotate the verification token
again through ``__RequestVerificationTokenOne``.

The device is trusted only if both its server signature and the public key
signature match the values computed locally. The public key is then stored
in the key store and the current verification token is returned.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum, auto

from .credentials import Credentials
from .endpoints import Endpoint
from .exceptions import (
    HILINK_AUTHENTICATION_ERRORS,
    HILINK_SESSION_ERRORS,
    AuthenticationError,
    DeviceError,
    HiLinkErrorCode,
    HiLinkException,
    IdentityCheck,
    IdentityError,
    LoginCancelledError,
    ProtocolError,
    RateLimitError,
    SessionError,
    TimeoutError,
)
from .keystore import BaseKeyStore, TrustedDeviceKey
from .scram import (
    ScramParameters,
    client_proof,
    compute_proofs,
    generate_nonce,
    public_key_signature,
    server_proof,
    verify_proof,
)
from .transports import BaseTransport, TransportResponse
from .xmlcodec import XmlResponse, build_request

_LOGGER = logging.getLogger(__name__)

VERIFICATION_TOKEN_HEADER = "__RequestVerificationToken"
ROTATED_TOKEN_HEADER = "__RequestVerificationTokenOne"
#: Length of the noise prefix of the token returned by the token endpoint
TOKEN_PREFIX_LENGTH = 32

CHALLENGE_HEADERS = {"Content-Type": "text/html"}
AUTHENTICATION_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8"
}


class LoginState(Enum):
    """Enum for the login state machine."""

    IDLE = auto()
    SESSION_INIT = auto()  # Session cookie requested
    TOKEN_FETCH = auto()  # Initial verification token known
    PHASE_ONE_SENT = auto()  # Challenge posted
    PHASE_ONE_RECEIVED = auto()  # Server nonce, salt and iterations known
    PROOF_COMPUTED = auto()
    PHASE_TWO_SENT = auto()  # Client proof posted
    PHASE_TWO_RECEIVED = auto()  # Server signatures known
    VERIFIED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class LoginEvent:
    """A state change of a login attempt."""

    state: LoginState
    host: str
    error: HiLinkException | None = None


@dataclass(frozen=True)
class ServerChallenge:
    """Fields of the challenge response."""

    server_nonce: str
    salt: str
    iterations: int


@dataclass(frozen=True)
class ServerFinal:
    """Fields of the authentication response."""

    server_signature: str
    public_key_signature: str
    modulus: str
    exponent: str


@dataclass(frozen=True)
class LoginSession:
    """Result of a verified login."""

    #: Verification token to send with the next request
    token: str
    device_key: TrustedDeviceKey


LoginListener = Callable[[LoginEvent], None]


class ScramLogin:
    """One SCRAM login attempt against a device.

    Each transition is a method which can be called on its own; :meth:`login`
    runs all of them in order. Any failure moves the attempt to
    ``LoginState.FAILED`` and raises. Attempts are single use.
    """

    def __init__(
        self,
        transport: BaseTransport,
        credentials: Credentials,
        key_store: BaseKeyStore,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
        listener: LoginListener | None = None,
        nonce_factory: Callable[[], str] = generate_nonce,
    ) -> None:
        self._transport = transport
        self._credentials = credentials
        self._key_store = key_store
        self._timeout = timeout
        self._cancel_event = cancel_event
        self._listener = listener
        self._nonce_factory = nonce_factory
        self._host = transport.host

        self._state = LoginState.IDLE
        self._client_nonce: str | None = None
        self._token: str | None = None
        self._challenge: ServerChallenge | None = None
        self._params: ScramParameters | None = None
        #: The exception which failed the attempt
        self.error: HiLinkException | None = None

    @property
    def state(self) -> LoginState:
        """Current state of the attempt."""
        return self._state

    @property
    def token(self) -> str | None:
        """Current verification token."""
        return self._token

    @property
    def params(self) -> ScramParameters | None:
        """SCRAM parameters, once the challenge has been answered."""
        return self._params

    def _set_state(
        self, state: LoginState, error: HiLinkException | None = None
    ) -> None:
        self._state = state
        _LOGGER.debug("Login to %s is now %s", self._host, state.name)
        if self._listener:
            self._listener(LoginEvent(state, self._host, error))

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise LoginCancelledError(f"Login to {self._host} was cancelled")

    async def _exchange(
        self, phase: str, request: Awaitable[TransportResponse]
    ) -> TransportResponse:
        try:
            async with asyncio.timeout(self._timeout):
                response = await request
        except TimeoutError:
            raise
        except asyncio.TimeoutError as ex:
            raise TimeoutError(
                f"Timed out after {self._timeout}s waiting for {phase} "
                f"from {self._host}"
            ) from ex
        _LOGGER.debug(
            "Device %s responded with status %s to %s",
            self._host,
            response.status,
            phase,
        )
        return response

    def _check_status(self, response: TransportResponse, phase: str) -> None:
        if response.status != 200:
            raise HiLinkException(
                f"Device {self._host} responded with {response.status} to {phase}"
            )

    def _raise_for_error(self, doc: XmlResponse, phase: str) -> None:
        error_code: HiLinkErrorCode | None = None
        if error_code_raw := doc.get("error.code"):
            try:
                error_code = HiLinkErrorCode.from_int(int(error_code_raw))
            except ValueError:
                _LOGGER.warning(
                    "Device %s received unknown error code: %s",
                    self._host,
                    error_code_raw,
                )
                error_code = HiLinkErrorCode.INTERNAL_UNKNOWN_ERROR

        if (wait_time := doc.get("error.waittime")) is not None:
            try:
                wait_minutes: int | None = int(wait_time, 10)
            except ValueError:
                wait_minutes = None
            raise RateLimitError(
                "Too many incorrect login attempts, "
                f"try again in {wait_time} minutes",
                wait_minutes=wait_minutes,
                error_code=error_code,
            )

        msg = f"Error in {phase} from {self._host}"
        if error_code is HiLinkErrorCode.USERNAME_PWD_OVERRUN:
            raise RateLimitError(msg, error_code=error_code)
        if error_code in HILINK_AUTHENTICATION_ERRORS:
            raise AuthenticationError(msg, error_code=error_code)
        if error_code in HILINK_SESSION_ERRORS:
            raise SessionError(msg, error_code=error_code)
        raise DeviceError(msg, error_code=error_code)

    async def init_session(self) -> None:
        """Generate the client nonce and open a web session."""
        self._client_nonce = self._nonce_factory()
        response = await self._exchange(
            "session init", self._transport.get(Endpoint.Root.value)
        )
        if response.status != 200:
            raise SessionError(
                f"Device {self._host} responded with {response.status} "
                "to session init"
            )
        self._set_state(LoginState.SESSION_INIT)

    async def fetch_token(self) -> str:
        """Fetch the initial verification token with its prefix stripped."""
        response = await self._exchange(
            "token request", self._transport.get(Endpoint.Token.value)
        )
        self._check_status(response, "token request")
        doc = XmlResponse.from_bytes(response.body)
        if doc.is_error:
            self._raise_for_error(doc, "token request")

        token = doc.get("response.token") or ""
        if len(token) <= TOKEN_PREFIX_LENGTH:
            raise ProtocolError(f"Device {self._host} did not supply a token")
        self._set_state(LoginState.TOKEN_FETCH)
        return token[TOKEN_PREFIX_LENGTH:]

    async def send_challenge(self, token: str) -> TransportResponse:
        """Post the username and client nonce."""
        if self._client_nonce is None:
            raise HiLinkException("Session must be initialized before the challenge")
        body = build_request(
            [
                ("username", self._credentials.username),
                ("firstnonce", self._client_nonce),
                ("mode", "1"),
            ]
        )
        headers = {**CHALLENGE_HEADERS, VERIFICATION_TOKEN_HEADER: token}
        response = await self._exchange(
            "challenge login",
            self._transport.post(
                Endpoint.ChallengeLogin.value, body, headers=headers
            ),
        )
        self._set_state(LoginState.PHASE_ONE_SENT)
        return response

    def receive_challenge(self, response: TransportResponse) -> ServerChallenge:
        """Read the verification token and the SCRAM challenge."""
        self._check_status(response, "challenge login")
        doc = XmlResponse.from_bytes(response.body)
        if doc.is_error:
            self._raise_for_error(doc, "challenge login")

        if not (token := response.header(VERIFICATION_TOKEN_HEADER)):
            raise ProtocolError(
                f"Device {self._host} response is missing verification token"
            )

        server_nonce = doc.require("response.servernonce")
        salt = doc.require("response.salt")
        iterations_raw = doc.require("response.iterations")
        try:
            iterations = int(iterations_raw, 10)
        except ValueError as ex:
            raise ProtocolError(
                f"Device {self._host} sent invalid iterations {iterations_raw!r}"
            ) from ex

        self._token = token
        self._challenge = ServerChallenge(server_nonce, salt, iterations)
        self._set_state(LoginState.PHASE_ONE_RECEIVED)
        return self._challenge

    def compute_proof(self) -> str:
        """Assemble the SCRAM parameters and compute the client proof."""
        if self._client_nonce is None or self._challenge is None:
            raise HiLinkException("Challenge must be received before the proof")
        params = ScramParameters(
            client_nonce=self._client_nonce,
            server_nonce=self._challenge.server_nonce,
            salt=self._challenge.salt,
            iterations=self._challenge.iterations,
        )
        proof = client_proof(params, self._credentials.password)
        if _LOGGER.isEnabledFor(logging.DEBUG):
            proofs = compute_proofs(params, self._credentials.password)
            _LOGGER.debug(
                "Client proof for %s: client nonce %s, server nonce %s, "
                "salt %s, iterations %s, stored key %s, signature %s, proof %s",
                self._host,
                params.client_nonce,
                params.server_nonce,
                params.salt,
                params.iterations,
                proofs.stored_key_digest,
                proofs.signature_digest,
                proof,
            )
        self._params = params
        self._set_state(LoginState.PROOF_COMPUTED)
        return proof

    async def send_authentication(self, proof: str) -> TransportResponse:
        """Post the client proof with the final nonce."""
        if self._params is None or self._token is None:
            raise HiLinkException("Proof must be computed before authentication")
        body = build_request(
            [("clientproof", proof), ("finalnonce", self._params.server_nonce)]
        )
        headers = {**AUTHENTICATION_HEADERS, VERIFICATION_TOKEN_HEADER: self._token}
        response = await self._exchange(
            "authentication login",
            self._transport.post(
                Endpoint.AuthenticationLogin.value, body, headers=headers
            ),
        )
        self._set_state(LoginState.PHASE_TWO_SENT)
        return response

    def receive_authentication(self, response: TransportResponse) -> ServerFinal:
        """Read the rotated token and the server signatures."""
        self._check_status(response, "authentication login")
        doc = XmlResponse.from_bytes(response.body)
        if doc.is_error:
            self._raise_for_error(doc, "authentication login")

        if rotated := response.header(ROTATED_TOKEN_HEADER):
            self._token = rotated
        elif not self._token:
            raise ProtocolError(
                f"Device {self._host} did not supply a new verification token"
            )

        final = ServerFinal(
            server_signature=doc.require("response.serversignature"),
            public_key_signature=doc.require("response.rsapubkeysignature"),
            modulus=doc.require("response.rsan"),
            exponent=doc.require("response.rsae"),
        )
        self._set_state(LoginState.PHASE_TWO_RECEIVED)
        return final

    async def verify(self, final: ServerFinal) -> LoginSession:
        """Verify the device identity and trust its public key."""
        if self._params is None or self._token is None:
            raise HiLinkException("Authentication must complete before verification")
        password = self._credentials.password

        expected = server_proof(self._params, password)
        if not verify_proof(expected, final.server_signature):
            raise IdentityError(
                f"Device {self._host} server identity unverified",
                check=IdentityCheck.ServerProof,
            )

        expected = public_key_signature(self._params, password, final.modulus)
        if not verify_proof(expected, final.public_key_signature):
            raise IdentityError(
                f"Device {self._host} sent an invalid public key",
                check=IdentityCheck.PublicKey,
            )

        device_key = TrustedDeviceKey(final.modulus, final.exponent)
        device_key.public_key()
        await self._key_store.store(device_key)
        _LOGGER.debug("Server identity of %s verified", self._host)
        self._set_state(LoginState.VERIFIED)
        return LoginSession(self._token, device_key)

    async def login(self) -> LoginSession:
        """Run the whole login and return once it is verified or failed."""
        if self._state is not LoginState.IDLE:
            raise HiLinkException("A login attempt can only be run once")
        try:
            self._check_cancelled()
            await self.init_session()
            self._check_cancelled()
            token = await self.fetch_token()
            self._check_cancelled()
            response = await self.send_challenge(token)
            self._check_cancelled()
            self.receive_challenge(response)
            self._check_cancelled()
            proof = self.compute_proof()
            self._check_cancelled()
            response = await self.send_authentication(proof)
            self._check_cancelled()
            final = self.receive_authentication(response)
            self._check_cancelled()
            return await self.verify(final)
        except HiLinkException as ex:
            _LOGGER.debug("Login to %s failed in %s: %s", self._host, self._state, ex)
            self.error = ex
            self._set_state(LoginState.FAILED, ex)
            raise
        except asyncio.CancelledError:
            self._set_state(LoginState.FAILED)
            raise
        except Exception:
            _LOGGER.debug("Login to %s failed in %s", self._host, self._state)
            self._set_state(LoginState.FAILED)
            raise
