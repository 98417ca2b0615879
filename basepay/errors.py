"""Error taxonomy for the BasePay interaction layer.

Every failure that can reach a flow boundary is a ``BasePayError`` with a
``category`` (one of the ``ERR_*`` codes in ``basepay.evm.constants``).
Raw web3 / wallet exceptions are translated by ``classify_chain_error`` and
kept as ``__cause__``.
"""

from __future__ import annotations

from typing import Any

from web3.exceptions import ContractLogicError

from .evm.constants import (
    ERR_APPROVAL_FAILED,
    ERR_CONTRACT_NOT_FOUND,
    ERR_EXECUTION_REVERTED,
    ERR_EXPLORER,
    ERR_INSUFFICIENT_BALANCE,
    ERR_INVOICE_NOT_FOUND,
    ERR_NETWORK_MISMATCH,
    ERR_PROVIDER_INTERNAL,
    ERR_UNSUPPORTED_NETWORK,
    ERR_USER_REJECTED,
    ERR_VALIDATION,
    RPC_CODE_INTERNAL_ERROR,
    RPC_CODE_USER_REJECTED,
)


class BasePayError(Exception):
    """Base class for interaction-layer errors."""

    category: str = ERR_PROVIDER_INTERNAL

    def __init__(self, message: str, code: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(BasePayError):
    """Bad user input, caught before any network call."""

    category = ERR_VALIDATION


class MissingContractConfigError(ValidationError):
    """No contract address configured for the active network."""

    def __init__(self, network_name: str, contract_kind: str = "invoice") -> None:
        super().__init__(f"{contract_kind.capitalize()} contract address not configured for {network_name}")
        self.network_name = network_name
        self.contract_kind = contract_kind


class UnsupportedNetworkError(BasePayError):
    """Chain id is not present in the network registry."""

    category = ERR_UNSUPPORTED_NETWORK

    def __init__(self, chain_id: int) -> None:
        super().__init__(f"Unsupported network: chain id {chain_id}")
        self.chain_id = chain_id


class NetworkMismatchError(BasePayError):
    """Wallet and provider disagree on the chain and no safe fallback exists."""

    category = ERR_NETWORK_MISMATCH

    def __init__(
        self,
        expected_chain_id: int,
        provider_chain_id: int | None,
        wallet_chain_id: int | None,
        network_name: str = "",
    ) -> None:
        target = network_name or f"chain {expected_chain_id}"
        super().__init__(
            f"Network mismatch: wallet provider is on chain {provider_chain_id}, "
            f"need chain {expected_chain_id} ({target})"
        )
        self.expected_chain_id = expected_chain_id
        self.provider_chain_id = provider_chain_id
        self.wallet_chain_id = wallet_chain_id
        self.network_name = network_name


class ContractNotFoundError(BasePayError):
    """No code at the expected contract address."""

    category = ERR_CONTRACT_NOT_FOUND

    def __init__(self, address: str, network_name: str = "") -> None:
        where = f" on {network_name}" if network_name else ""
        super().__init__(f"No contract deployed at {address}{where}")
        self.address = address
        self.network_name = network_name


class InvoiceNotFoundError(BasePayError):
    """Invoice hash unknown on the active network.

    ``found_on`` names another registered network holding the invoice, or is
    None when no registered network knows the hash.
    """

    category = ERR_INVOICE_NOT_FOUND

    def __init__(self, invoice_hash: str, network_name: str, found_on: str | None = None) -> None:
        if found_on:
            message = (
                f"Invoice found on {found_on}. Please switch your wallet to "
                f"{found_on} to view this invoice."
            )
        else:
            message = f"Invoice not found on {network_name}. Please check the invoice hash."
        super().__init__(message)
        self.invoice_hash = invoice_hash
        self.network_name = network_name
        self.found_on = found_on


class InsufficientBalanceError(BasePayError):
    """Token balance below the amount required."""

    category = ERR_INSUFFICIENT_BALANCE

    def __init__(self, required: int, available: int, symbol: str = "token") -> None:
        super().__init__(
            f"Insufficient {symbol} balance. Required: {required}, Available: {available}"
        )
        self.required = required
        self.available = available
        self.symbol = symbol


class ApprovalFailedError(BasePayError):
    """Allowance still short after a confirmed approval."""

    category = ERR_APPROVAL_FAILED

    def __init__(self, required: int, actual: int) -> None:
        super().__init__(f"Approval verification failed. Expected: {required}, Got: {actual}")
        self.required = required
        self.actual = actual


class UserRejectedError(BasePayError):
    """The wallet owner declined to sign."""

    category = ERR_USER_REJECTED


class ExecutionRevertedError(BasePayError):
    """The chain rejected the call."""

    category = ERR_EXECUTION_REVERTED


class ProviderInternalError(BasePayError):
    """RPC-level or transport failure."""

    category = ERR_PROVIDER_INTERNAL


class ExplorerError(BasePayError):
    """Block-explorer API returned an error or no data."""

    category = ERR_EXPLORER


# ============================================================================
# Chain error classification
# ============================================================================

_USER_REJECTED_MARKERS = ("user rejected", "user denied", "rejected by user", "action_rejected")


def _rpc_error(exc: BaseException) -> dict[str, Any] | None:
    """Extract the JSON-RPC ``error`` object carried by an exception, if any."""
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict) and isinstance(response.get("error"), dict):
        return response["error"]
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0]
    return None


def _error_code(exc: BaseException) -> Any:
    code = getattr(exc, "code", None)
    if code is not None:
        return code
    error = _rpc_error(exc)
    if error is not None:
        return error.get("code")
    return None


def _error_message(exc: BaseException) -> str:
    error = _rpc_error(exc)
    if error is not None:
        data = error.get("data")
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        if error.get("message"):
            return str(error["message"])
    return str(exc) or exc.__class__.__name__


def classify_chain_error(exc: BaseException) -> BasePayError:
    """Translate a wallet / RPC / contract exception into a ``BasePayError``.

    The underlying code (``4001``, ``-32603``, ``"CALL_EXCEPTION"``...) is
    preserved on the returned error and the original is chained as
    ``__cause__``.

    Args:
        exc: Exception raised by web3, the wallet provider, or the transport.

    Returns:
        Classified error (not raised).
    """
    if isinstance(exc, BasePayError):
        return exc

    code = _error_code(exc)
    message = _error_message(exc)

    if isinstance(exc, ContractLogicError) or code == "CALL_EXCEPTION":
        result: BasePayError = ExecutionRevertedError(message, code=code)
    elif code == RPC_CODE_USER_REJECTED or code == "ACTION_REJECTED" or any(
        marker in message.lower() for marker in _USER_REJECTED_MARKERS
    ):
        result = UserRejectedError(message, code=code)
    elif code == RPC_CODE_INTERNAL_ERROR:
        result = ProviderInternalError(message, code=code)
    elif "execution reverted" in message.lower():
        result = ExecutionRevertedError(message, code=code)
    else:
        # RPC, transport and timeout failures
        result = ProviderInternalError(message, code=code)

    result.__cause__ = exc
    return result


# ============================================================================
# User-facing messages
# ============================================================================


def user_message(error: BasePayError, action: str = "Transaction") -> str:
    """Render the notification text for a classified error.

    Args:
        error: Classified error.
        action: Verb phrase for the failed action ("Payment", "Execution"...).

    Returns:
        Message suitable for a toast / status line.
    """
    if isinstance(error, UserRejectedError):
        return "Transaction cancelled by user"
    if isinstance(error, ExecutionRevertedError):
        if error.code == "CALL_EXCEPTION":
            return (
                f"{action} failed: you may not be authorized to perform this action "
                "or its requirements are not met"
            )
        return f"{action} failed: {error.message}"
    if isinstance(error, ProviderInternalError):
        return f"{action} failed: {error.message}"
    if isinstance(error, NetworkMismatchError):
        target = error.network_name or f"chain {error.expected_chain_id}"
        return f"Network mismatch: please switch your wallet to {target}"
    return error.message
