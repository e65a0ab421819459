"""A fake HiLink device answering the login requests of the library.

The device side of the exchange is computed here with hashlib and hmac
directly so the tests check the library against an independent
implementation of the protocol.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from hilink.endpoints import Endpoint
from hilink.exceptions import HiLinkErrorCode
from hilink.xmlcodec import XML_DECLARATION, XmlResponse

MOCK_USER = "admin"
MOCK_PWD = "admin"  # noqa: S105
CLIENT_NONCE = "a1b2c3d4" * 8
SERVER_NONCE_SUFFIX = "e5f6a7b8" * 8
SERVER_NONCE = CLIENT_NONCE + SERVER_NONCE_SUFFIX
SALT = "aabb"
ITERATIONS = 1000
RSAN = "d3adb33f" * 16
RSAE = "010001"

TOKEN_NOISE = "N" * 32
INITIAL_TOKEN = "initialtoken0123456789abcdefghij"
PHASE_ONE_TOKEN = "phaseonetoken0123456789abcdefghi"
FINAL_TOKEN = "finaltoken0123456789abcdefghijkl"

# Computed once with the openssl command line tool for password "admin",
# salt "aabb", 1000 iterations and the nonces above.
GOLDEN_SALTED_PASSWORD = (
    "c52d8ab3271013827a362a5687cefd7bc43e01814d08daabc796207077655771"
)
GOLDEN_CLIENT_KEY = "2be6b5f58857c2df1dc493d28e480aca188667a7a8cd2bcc7be1eee965c2e29a"
GOLDEN_STORED_KEY = "28e14ec5911081d1ee246d8d4de771795ca331e0b1559a743e0157e6dd348564"
GOLDEN_SIGNATURE = "2612222721537d11c84d45bbb56375c1ff3e4fabeffc160af1ea5d8a29d515bc"
GOLDEN_CLIENT_PROOF = (
    "0df497d2a904bfced589d6693b2b7f0be7b8280c47313dc68a0bb3634c17f726"
)
GOLDEN_SERVER_KEY = "35adaf82fbbd98f8f797106a7d805c2951e15fdd125933a1b6e55c47a082124d"
GOLDEN_SERVER_PROOF = (
    "b7de6cfd4abf17771fcefbdfc69dfd94f181bbcb339baefe05cf61130415fb4f"
)
GOLDEN_PUBLIC_KEY_SIGNATURE = (
    "5cffeeeea847c5327ef382ecba80791d7845e373fcbd23f21fa6fa3768530a42"
)


def _hmac(key: bytes, msg: bytes) -> bytes:
    return hmac.new(key, msg, hashlib.sha256).digest()


def _xml(root: str, **fields: Any) -> str:
    body = "".join(f"<{name}>{value}</{name}>" for name, value in fields.items())
    return f"{XML_DECLARATION}<{root}>{body}</{root}>"


def corrupt(hex_digest: str) -> str:
    """Flip the first byte of a hex digest."""
    first = int(hex_digest[:2], 16) ^ 0xFF
    return f"{first:02x}" + hex_digest[2:]


class MockHiLinkDevice:
    class _mock_response:
        def __init__(self, status, body: str | bytes, headers=None):
            self.status = status
            self._body = body.encode() if isinstance(body, str) else body
            self.headers = CIMultiDictProxy(CIMultiDict(headers or {}))

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_t, exc_v, exc_tb):
            pass

        async def read(self):
            return self._body

    def __init__(
        self,
        host,
        *,
        password=MOCK_PWD,
        root_status=200,
        send_token=True,
        send_phase_one_token=True,
        rotate_token=True,
        wait_time=None,
        challenge_error_code=None,
        corrupt_server_signature=False,
        corrupt_public_key_signature=False,
        public_key=RSAN,
        iterations=ITERATIONS,
    ):
        self.host = host
        self.password = password
        self.requests: list[tuple[str, str, dict[str, str], str | None]] = []
        self.client_nonce: str | None = None
        self.server_nonce: str | None = None
        self.received_proof: str | None = None

        # test behaviour attributes
        self.root_status = root_status
        self.send_token = send_token
        self.send_phase_one_token = send_phase_one_token
        self.rotate_token = rotate_token
        self.wait_time = wait_time
        self.challenge_error_code = challenge_error_code
        self.corrupt_server_signature = corrupt_server_signature
        self.corrupt_public_key_signature = corrupt_public_key_signature
        self.public_key = public_key
        self.iterations = iterations

    @property
    def paths(self) -> list[str]:
        return [path for _, path, _, _ in self.requests]

    def _keys(self) -> tuple[bytes, bytes]:
        salted = hashlib.pbkdf2_hmac(
            "sha256", self.password.encode(), bytes.fromhex(SALT), self.iterations, 32
        )
        return _hmac(b"Client Key", salted), _hmac(b"Server Key", salted)

    def _auth_message(self) -> bytes:
        nonces = (self.client_nonce, self.server_nonce, self.server_nonce)
        return ",".join(nonces).encode()  # type: ignore[arg-type]

    async def get(self, url, *_, headers=None, **__):
        path = URL(url).path
        self.requests.append(("GET", path, dict(headers or {}), None))
        if path == Endpoint.Root.value:
            return self._mock_response(self.root_status, "<html></html>")
        if path == Endpoint.Token.value:
            token = TOKEN_NOISE + INITIAL_TOKEN if self.send_token else ""
            return self._mock_response(200, _xml("response", token=token))
        return self._mock_response(404, "")

    async def post(self, url, *_, data=None, headers=None, **__):
        path = URL(url).path
        headers = dict(headers or {})
        self.requests.append(("POST", path, headers, data))
        assert data.startswith(XML_DECLARATION + "<request>")
        request = XmlResponse.from_bytes(data)
        if path == Endpoint.ChallengeLogin.value:
            assert headers["__RequestVerificationToken"] == INITIAL_TOKEN
            return self._challenge_response(request)
        if path == Endpoint.AuthenticationLogin.value:
            assert headers["__RequestVerificationToken"] == PHASE_ONE_TOKEN
            return self._authentication_response(request)
        return self._mock_response(404, "")

    def _challenge_response(self, request: XmlResponse):
        assert request.get("request.username") == MOCK_USER
        assert request.get("request.mode") == "1"
        self.client_nonce = request.get("request.firstnonce")
        self.server_nonce = f"{self.client_nonce}{SERVER_NONCE_SUFFIX}"

        headers = {}
        if self.send_phase_one_token:
            headers["__RequestVerificationToken"] = PHASE_ONE_TOKEN

        if self.wait_time is not None:
            body = _xml(
                "error",
                code=HiLinkErrorCode.USERNAME_PWD_OVERRUN.value,
                message="",
                waittime=self.wait_time,
            )
            return self._mock_response(200, body, headers)
        if self.challenge_error_code is not None:
            body = _xml("error", code=self.challenge_error_code, message="")
            return self._mock_response(200, body, headers)

        body = _xml(
            "response",
            salt=SALT,
            iterations=self.iterations,
            servernonce=self.server_nonce,
            modeselected=1,
        )
        return self._mock_response(200, body, headers)

    def _authentication_response(self, request: XmlResponse):
        assert request.get("request.finalnonce") == self.server_nonce
        self.received_proof = request.get("request.clientproof")

        client_key, server_key = self._keys()
        stored_key = hashlib.sha256(client_key).digest()
        signature = _hmac(self._auth_message(), stored_key)
        proof = bytes.fromhex(self.received_proof)  # type: ignore[arg-type]
        recovered = bytes(a ^ b for a, b in zip(proof, signature))
        if hashlib.sha256(recovered).digest() != stored_key:
            body = _xml(
                "error", code=HiLinkErrorCode.USERNAME_PWD_WRONG.value, message=""
            )
            return self._mock_response(200, body)

        server_signature = _hmac(self._auth_message(), server_key).hex()
        public_key_signature = _hmac(server_key, bytes.fromhex(self.public_key)).hex()
        if self.corrupt_server_signature:
            server_signature = corrupt(server_signature)
        if self.corrupt_public_key_signature:
            public_key_signature = corrupt(public_key_signature)

        headers = {}
        if self.rotate_token:
            headers["__RequestVerificationTokenOne"] = FINAL_TOKEN
        body = _xml(
            "response",
            serversignature=server_signature,
            rsapubkeysignature=public_key_signature,
            rsae=RSAE,
            rsan=self.public_key,
        )
        return self._mock_response(200, body, headers)
