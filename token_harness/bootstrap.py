"""
One-shot session setup.

Derives the four accounts, connects the clients, resolves the token handle,
checks the deployed code and funds alice with INITIAL_MINT tokens. Any
failure is a SetupError; nothing is retried.
"""

from . import log
from .abi import PRANK_FUNCTIONS, REQUIRED_FUNCTIONS, TOKEN_ABI, load_abi, missing_functions
from .chain import TxSender, acct_from_key, connect
from .config import REQUIRED_KEYS, HarnessConfig
from .errors import HarnessError, SetupError
from .impersonation import ContractPrankBackend, Impersonator, NodePrankBackend
from .preflight import check_contract
from .session import Session
from .token import TokenContract


def required_functions(mode: str):
    if mode == "contract":
        return REQUIRED_FUNCTIONS + PRANK_FUNCTIONS
    return REQUIRED_FUNCTIONS


def resolve_abi(config: HarnessConfig):
    if config.abi_path is None:
        return TOKEN_ABI
    try:
        abi = load_abi(config.abi_path)
    except (OSError, ValueError) as e:
        raise SetupError(f"could not load ABI from {config.abi_path}: {e}")
    missing = missing_functions(abi, required_functions(config.impersonation_mode))
    if missing:
        raise SetupError(f"ABI at {config.abi_path} lacks required functions", missing)
    return abi


def derive_accounts(config: HarnessConfig):
    return {role: acct_from_key(config.key_for(role)) for role in REQUIRED_KEYS}


def bootstrap(config: HarnessConfig, mint: bool = True) -> Session:
    try:
        return _bootstrap(config, mint)
    except SetupError:
        raise
    except Exception as e:
        raise SetupError(f"setup failed: {e}") from e


def _bootstrap(config, mint):
    accounts = derive_accounts(config)
    for role, acct in accounts.items():
        log.info(f"Loaded {role} account: {acct.address}")

    w3 = connect(config.rpc_url)
    log.info(f"Connected to {config.rpc_url} chainId={w3.eth.chain_id}")

    abi = resolve_abi(config)
    report = check_contract(w3, config.contract_address, abi, required_functions(config.impersonation_mode))
    if not report["deployed"]:
        raise SetupError(f"no contract code at {config.contract_address}")
    if report["missing"]:
        raise SetupError(f"contract at {config.contract_address} lacks required selectors", report["missing"])

    sender = TxSender(w3, accounts["operator"], receipt_timeout=config.receipt_timeout)
    token = TokenContract(w3, config.contract_address, abi, sender)

    if config.impersonation_mode == "node":
        backend = NodePrankBackend(w3)
    else:
        backend = ContractPrankBackend(token)

    try:
        decimals = token.decimals()
    except Exception as e:
        log.warn(f"decimals() read failed, using TOKEN_DECIMALS={config.token_decimals}: {e}")
        decimals = None
    if decimals is None:
        decimals = config.token_decimals

    session = Session(
        config=config,
        w3=w3,
        accounts=accounts,
        token=token,
        impersonator=Impersonator(backend),
        decimals=decimals,
    )
    log.info(f"Token {token.address} resolved ({decimals} decimals, impersonation via {config.impersonation_mode})")

    if mint:
        fund_participant(session)
    return session


def fund_participant(session: Session):
    """Mint INITIAL_MINT to alice, sent as the token owner."""
    amount = session.units(session.config.initial_mint)
    try:
        session.mint(session.alice, amount)
    except HarnessError as e:
        raise SetupError(f"initial mint to alice failed: {e}")
    log.info(f"Minted {session.fmt(amount)} tokens to alice ({session.alice})")
