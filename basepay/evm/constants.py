"""EVM constants - chain ids, token metadata, ABIs, selectors, timing knobs."""

# Native asset marker (invoices priced in ETH use the zero address as token)
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Native-asset transfers are scaled with 18 decimals by convention
NATIVE_DECIMALS = 18

# Chain ids
CHAIN_ID_BASE_SEPOLIA = 84532
CHAIN_ID_MORPH_HOLESKY = 2810

# Network used when the wallet reports an unsupported chain
DEFAULT_CHAIN_ID = CHAIN_ID_BASE_SEPOLIA

# Direct JSON-RPC endpoints, used only as a fallback for the injected provider
RPC_URLS: dict[int, str] = {
    CHAIN_ID_BASE_SEPOLIA: "https://sepolia.base.org",
    CHAIN_ID_MORPH_HOLESKY: "https://rpc-quicknode-holesky.morphl2.io",
}

EXPLORER_URLS: dict[int, str] = {
    CHAIN_ID_BASE_SEPOLIA: "https://sepolia.basescan.org",
    CHAIN_ID_MORPH_HOLESKY: "https://explorer-holesky.morphl2.io",
}

# Token addresses
USDC_BASE_SEPOLIA = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
USDT_MORPH_HOLESKY = "0x9E12AD42c4E4d2acFBADE01a96446e48e6764B98"

USDC_LOGO = "https://assets.coingecko.com/coins/images/6319/standard/usdc.png?1696506694"
USDT_LOGO = "https://assets.coingecko.com/coins/images/325/standard/Tether.png?1696501661"
ETH_LOGO = "https://assets.coingecko.com/coins/images/279/standard/ethereum.png?1696501628"

# Timing knobs (seconds)
DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_EXECUTION_SPACING = 1.0
DEFAULT_SETTLE_DELAY = 3.0

# Transaction status
TX_STATUS_SUCCESS = 1
TX_STATUS_FAILED = 0

# Wallet / JSON-RPC error codes
RPC_CODE_USER_REJECTED = 4001
RPC_CODE_INTERNAL_ERROR = -32603

# Function selectors on the payroll contract
# createInvoice(bytes32,address,uint256,uint256,string,string,string)
CREATE_INVOICE_SELECTOR = "0x09f6d5e8"
# payInvoice(bytes32)
PAY_INVOICE_SELECTOR = "0xf8a8a076"

# Block explorer (Etherscan v2 multichain API)
ETHERSCAN_V2_API = "https://api.etherscan.io/v2/api"

# Error codes
ERR_VALIDATION = "validation"
ERR_NETWORK_MISMATCH = "network_mismatch"
ERR_UNSUPPORTED_NETWORK = "unsupported_network"
ERR_CONTRACT_NOT_FOUND = "contract_not_found"
ERR_INVOICE_NOT_FOUND = "invoice_not_found"
ERR_INSUFFICIENT_BALANCE = "insufficient_balance"
ERR_APPROVAL_FAILED = "approval_failed"
ERR_USER_REJECTED = "user_rejected"
ERR_EXECUTION_REVERTED = "execution_reverted"
ERR_PROVIDER_INTERNAL = "provider_internal"
ERR_EXPLORER = "explorer"


# ERC20 subset used for balance, allowance and approval checks
ERC20_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# Invoice / payroll contract
PAYROLL_ABI = [
    {
        "inputs": [
            {"name": "hash", "type": "bytes32"},
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "validForSeconds", "type": "uint256"},
            {"name": "memo", "type": "string"},
            {"name": "logoURI", "type": "string"},
            {"name": "description", "type": "string"},
        ],
        "name": "createInvoice",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "hash", "type": "bytes32"}],
        "name": "payInvoice",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"name": "", "type": "bytes32"}],
        "name": "invoices",
        "outputs": [
            {"name": "merchant", "type": "address"},
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "dueBy", "type": "uint256"},
            {"name": "isPaid", "type": "bool"},
            {"name": "memo", "type": "string"},
            {"name": "logoURI", "type": "string"},
            {"name": "description", "type": "string"},
            {"name": "paidAt", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "merchant", "type": "address"}],
        "name": "getInvoicesByMerchant",
        "outputs": [{"name": "", "type": "bytes32[]"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# Cross-chain payment-automation contract
AUTOMATION_ABI = [
    {
        "inputs": [],
        "name": "owner",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "", "type": "address"}],
        "name": "authorizedControllers",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "controller", "type": "address"}],
        "name": "addController",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "nextPaymentId",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "paymentId", "type": "uint256"}],
        "name": "getPaymentDetails",
        "outputs": [
            {"name": "creator", "type": "address"},
            {"name": "totalAmount", "type": "uint256"},
            {"name": "amountPerRecipient", "type": "uint256"},
            {"name": "scheduledTime", "type": "uint256"},
            {"name": "executed", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "paymentId", "type": "uint256"}],
        "name": "getPaymentRecipients",
        "outputs": [{"name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "totalAmount", "type": "uint256"},
            {"name": "recipients", "type": "address[]"},
            {"name": "scheduledTime", "type": "uint256"},
        ],
        "name": "schedulePaymentWithToken",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "totalAmount", "type": "uint256"},
            {"name": "recipients", "type": "address[]"},
        ],
        "name": "executePaymentNowWithToken",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "paymentId", "type": "uint256"}],
        "name": "executeScheduledPayment",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]
