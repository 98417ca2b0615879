"""BasePay - contract interaction layer for invoicing and payment automation.

Resolves a usable provider per network, wraps the payroll and automation
contracts, sequences ERC20 approvals, runs the user flows, auto-executes due
scheduled payments and aggregates paid-invoice analytics.
"""

from .allowance import AllowanceSequencer
from .analytics import AnalyticsWindow, aggregate, summarize, window_dates
from .config import Settings
from .contracts import AutomationContract, BoundContract, PayrollContract, lookup_invoice
from .errors import (
    ApprovalFailedError,
    BasePayError,
    ContractNotFoundError,
    ExecutionRevertedError,
    ExplorerError,
    InsufficientBalanceError,
    InvoiceNotFoundError,
    MissingContractConfigError,
    NetworkMismatchError,
    ProviderInternalError,
    UnsupportedNetworkError,
    UserRejectedError,
    ValidationError,
    classify_chain_error,
    user_message,
)
from .explorer import ExplorerClient, ExplorerConfig, classify_transaction
from .flows import FlowResult, FlowState, Notification, NotificationLevel, PaymentOrchestrator
from .models import (
    AnalyticsBar,
    AuthorizationStatus,
    ExplorerTransaction,
    InvoiceRecord,
    InvoiceStatus,
    InvoiceSummary,
    NetworkConfig,
    ScheduledPayment,
    TokenInfo,
    TransactionReceipt,
    TxType,
)
from .networks import BUILTIN_NETWORKS, NetworkRegistry, default_registry
from .poller import AutoExecutionPoller
from .provider import ProviderBinding, ProviderResolver, WalletContext, http_provider, local_wallet
from .scheduling import PaymentBook, executable_payments, get_authorization
from .tokens import TokenReader, get_display_balance

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    # Networks and providers
    "BUILTIN_NETWORKS",
    "NetworkRegistry",
    "default_registry",
    "ProviderBinding",
    "ProviderResolver",
    "WalletContext",
    "http_provider",
    "local_wallet",
    # Contracts
    "BoundContract",
    "PayrollContract",
    "AutomationContract",
    "TokenReader",
    "lookup_invoice",
    "get_display_balance",
    "AllowanceSequencer",
    # Flows and automation
    "PaymentOrchestrator",
    "FlowResult",
    "FlowState",
    "Notification",
    "NotificationLevel",
    "AutoExecutionPoller",
    "PaymentBook",
    "executable_payments",
    "get_authorization",
    # Analytics and history
    "AnalyticsWindow",
    "aggregate",
    "summarize",
    "window_dates",
    "ExplorerClient",
    "ExplorerConfig",
    "classify_transaction",
    # Models
    "AnalyticsBar",
    "AuthorizationStatus",
    "ExplorerTransaction",
    "InvoiceRecord",
    "InvoiceStatus",
    "InvoiceSummary",
    "NetworkConfig",
    "ScheduledPayment",
    "TokenInfo",
    "TransactionReceipt",
    "TxType",
    # Errors
    "BasePayError",
    "ValidationError",
    "MissingContractConfigError",
    "UnsupportedNetworkError",
    "NetworkMismatchError",
    "ContractNotFoundError",
    "InvoiceNotFoundError",
    "InsufficientBalanceError",
    "ApprovalFailedError",
    "UserRejectedError",
    "ExecutionRevertedError",
    "ProviderInternalError",
    "ExplorerError",
    "classify_chain_error",
    "user_message",
]
