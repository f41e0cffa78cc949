"""
FastAPI REST API Module

Thin HTTP surface over the token ledger. Caller identity arrives in the
X-Caller-Id header, set by whatever authentication layer fronts the service.
Amounts travel as decimal strings so 256-bit values survive JSON clients.
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Any
from fastapi import FastAPI, HTTPException, Depends, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

from .audit import OperationJournal
from .authorization import AllowListAuthorizer
from .config import TokenLedgerConfig, get_config
from .errors import (
    LedgerError, InvalidAmountError, InsufficientBalanceError, UnauthorizedError
)
from .events import EventDispatcher
from .ledger import TokenLedger
from .logging_config import setup_logging
from .storage import InMemoryStorage, SQLiteStorage


AMOUNT_PATTERN = r"^[0-9]+$"


class MintRequest(BaseModel):
    account: str
    amount: str = Field(..., pattern=AMOUNT_PATTERN, description="Integer amount as string")


class BurnRequest(BaseModel):
    account: str
    amount: str = Field(..., pattern=AMOUNT_PATTERN, description="Integer amount as string")


class TransferRequest(BaseModel):
    to: str
    amount: str = Field(..., pattern=AMOUNT_PATTERN, description="Integer amount as string")
    sender: Optional[str] = Field(None, alias="from", description="Defaults to the caller")


class LedgerSystem:
    """Ledger with its journal, dispatcher and authorizer wired from config"""

    def __init__(self, config: Optional[TokenLedgerConfig] = None):
        self.config = config or get_config()
        self.dispatcher = EventDispatcher()
        self.storage = None
        self.journal = None

        authorities = self.config.get_mint_authorities()
        self.authorizer = AllowListAuthorizer(authorities) if authorities else None

        if self.config.enable_journal:
            if self.config.journal_backend == "sqlite":
                self.storage = SQLiteStorage(self.config.journal_path)
            else:
                self.storage = InMemoryStorage()
            self.journal = OperationJournal(self.storage)
            self.ledger = TokenLedger.from_journal(
                self.journal, config=self.config,
                dispatcher=self.dispatcher, authorizer=self.authorizer
            )
        else:
            self.ledger = TokenLedger(
                config=self.config, dispatcher=self.dispatcher, authorizer=self.authorizer
            )


def _event_response(event) -> Dict[str, Any]:
    data = event.to_dict()
    data['amount'] = str(data['amount'])
    return data


def _http_error(error: LedgerError) -> HTTPException:
    if isinstance(error, UnauthorizedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, InsufficientBalanceError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"error": error.code, "message": str(error)})


def _parse_amount(text: str) -> int:
    # int() refuses strings past the interpreter's digit limit
    try:
        return int(text)
    except ValueError:
        raise _http_error(InvalidAmountError(f"{text[:16]}... ({len(text)} digits)"))


def create_app(system: Optional[LedgerSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    system = system or LedgerSystem()

    app = FastAPI(
        title="Token Ledger API",
        description=f"{system.config.token_name} ({system.config.token_symbol}) fungible token ledger",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.system = system

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_ledger(request: Request) -> TokenLedger:
        return request.app.state.system.ledger

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/supply")
    async def total_supply(ledger: TokenLedger = Depends(get_ledger)):
        """Current total supply"""
        return {
            "total_supply": str(ledger.total_supply()),
            "symbol": system.config.token_symbol,
            "decimals": system.config.token_decimals
        }

    @app.get("/balances/{account}")
    async def balance_of(account: str, ledger: TokenLedger = Depends(get_ledger)):
        """Balance of an account"""
        return {"account": account, "balance": str(ledger.balance_of(account))}

    @app.post("/mint", status_code=status.HTTP_201_CREATED)
    async def mint(
        request: MintRequest,
        x_caller_id: Optional[str] = Header(None),
        ledger: TokenLedger = Depends(get_ledger)
    ):
        """Mint new supply to an account"""
        try:
            event = ledger.mint(request.account, _parse_amount(request.amount), caller=x_caller_id)
        except LedgerError as e:
            raise _http_error(e)
        return _event_response(event)

    @app.post("/burn")
    async def burn(
        request: BurnRequest,
        x_caller_id: Optional[str] = Header(None),
        ledger: TokenLedger = Depends(get_ledger)
    ):
        """Burn supply held by an account"""
        try:
            event = ledger.burn(request.account, _parse_amount(request.amount), caller=x_caller_id)
        except LedgerError as e:
            raise _http_error(e)
        return _event_response(event)

    @app.post("/transfer")
    async def transfer(
        request: TransferRequest,
        x_caller_id: Optional[str] = Header(None),
        ledger: TokenLedger = Depends(get_ledger)
    ):
        """Transfer from the caller (or explicit sender) to a recipient"""
        # An authenticated caller may only move its own funds
        if x_caller_id and request.sender and request.sender != x_caller_id:
            raise _http_error(UnauthorizedError(f"transfer from {request.sender}", x_caller_id))
        sender = request.sender or x_caller_id
        if not sender:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail={"error": "MissingSender", "message": "No sender or X-Caller-Id given"})
        try:
            event = ledger.transfer(sender, request.to, _parse_amount(request.amount), caller=x_caller_id)
        except LedgerError as e:
            raise _http_error(e)
        return _event_response(event)

    @app.get("/journal/verify")
    async def verify_journal(request: Request):
        """Verify the operation journal hash chain"""
        journal = request.app.state.system.journal
        if journal is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Journal disabled")
        return journal.verify_integrity()

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)
    uvicorn.run(
        "token_ledger.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level="info"
    )
