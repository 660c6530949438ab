from app.schemas.cases import CreateCaseRequest, CaseActionRequest, CaseResponse, CaseHistoryItem, CaseHistoryResponse
from app.schemas.quotes import UpsertQuoteRequest, QuoteResponse
from app.schemas.payments import CheckoutResponse, MockCompleteRequest, SettlementResponse
