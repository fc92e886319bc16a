import logging
import time
from uuid import uuid4
from typing import Any, Dict, Optional
from fastapi import FastAPI, HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import BaseModel, ConfigDict
from ..config import AppConfig
from ..core.engine import SignupEngine
from ..core.exceptions import (
    InvalidTransition,
    InvariantViolation,
    MissingReferralCode,
    OperationPending,
    SessionNotFound,
    SignupError,
)
from ..core.wizard import OnboardingWizard

logger = logging.getLogger(__name__)


class StartSessionRequest(BaseModel):
    referral_code: Optional[str] = None  # código do link de indicação
    session_id: Optional[str] = None  # sessão de navegação já existente (recarregamento)


class FieldsUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    national_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    postal_code: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state_code: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class WizardResponse(BaseModel):
    session_id: str
    referral_code: str
    referrer_name: Optional[str] = None
    stage: str
    stage_index: int
    stage_label: str
    can_go_back: bool
    fields: Dict[str, str]
    pending: bool
    last_error: Optional[str] = None
    validation_reason: Optional[str] = None
    address_lookup_error: Optional[str] = None
    account: Optional[Dict[str, Any]] = None
    installment_plan: Optional[Dict[str, Any]] = None
    completed: bool


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware que gera request_id único para cada requisição
    e adiciona aos logs e headers de resposta.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex[:16]
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Request processado: request_id={request_id}, "
            f"method={request.method}, path={request.url.path}, "
            f"status={response.status_code}, duration_ms={duration_ms:.2f}"
        )
        return response


def to_response(session_id: str, wizard: OnboardingWizard) -> WizardResponse:
    return WizardResponse(session_id=session_id, **wizard.snapshot())


def to_http_error(error: SignupError, request_id: str) -> HTTPException:
    """
    Converte erros de fluxo do cadastro em respostas HTTP.
    """
    if isinstance(error, MissingReferralCode):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, SessionNotFound):
        return HTTPException(status_code=404, detail="Sessão de cadastro não encontrada.")
    if isinstance(error, OperationPending):
        return HTTPException(status_code=409, detail="Aguarde a conclusão da operação em andamento.")
    if isinstance(error, InvalidTransition):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, InvariantViolation):
        logger.error(
            f"Violação de invariante no cadastro: request_id={request_id}, error={error}",
            exc_info=error,
        )
        return HTTPException(status_code=500, detail="Erro interno no cadastro. Contate o suporte.")
    logger.error(
        f"Erro inesperado no cadastro: request_id={request_id}, "
        f"error={type(error).__name__}: {error}",
        exc_info=error,
    )
    return HTTPException(status_code=500, detail="Erro interno no cadastro. Tente novamente.")


def create_app(config: Optional[AppConfig] = None, engine: Optional[SignupEngine] = None) -> FastAPI:
    """
    Cria a aplicação FastAPI e injeta dependências principais (config + engine).
    """
    config = config or AppConfig.load_from_env()
    engine = engine or SignupEngine(config=config)

    app = FastAPI(
        title="Referral Signup API",
        version="0.1.0",
        description="Cadastro de indicados: dados pessoais, endereço, senha e carnê.",
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        """
        Endpoint de health check para monitoramento e Docker healthchecks.
        """
        redis_ok = True
        if config.redis_url and config.redis_url.strip():
            try:
                from redis import Redis
                Redis.from_url(config.redis_url).ping()
            except Exception as e:
                logger.warning(f"Redis health check falhou: {e}")
                redis_ok = False

        return {
            "status": "healthy" if redis_ok else "degraded",
            "redis": "ok" if redis_ok else "error",
            "active_sessions": engine.active_sessions(),
        }

    @app.post("/signup/sessions", response_model=WizardResponse)
    async def start_session(payload: StartSessionRequest, request: Request) -> WizardResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            session_id, wizard = await engine.start_session(
                referral_code=payload.referral_code,
                session_id=payload.session_id,
            )
        except SignupError as e:
            raise to_http_error(e, request_id)
        return to_response(session_id, wizard)

    @app.get("/signup/sessions/{session_id}", response_model=WizardResponse)
    def get_session(session_id: str, request: Request) -> WizardResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            wizard = engine.get_wizard(session_id)
        except SignupError as e:
            raise to_http_error(e, request_id)
        return to_response(session_id, wizard)

    @app.patch("/signup/sessions/{session_id}/fields", response_model=WizardResponse)
    async def update_fields(session_id: str, payload: FieldsUpdateRequest, request: Request) -> WizardResponse:
        """
        Atualiza campos do formulário. Um CEP completo dispara a consulta de endereço.
        """
        request_id = getattr(request.state, "request_id", "unknown")
        values = payload.model_dump(exclude_unset=True)
        has_postal_code = "postal_code" in values
        postal_code = values.pop("postal_code", None)
        try:
            wizard = engine.get_wizard(session_id)
            wizard.update_fields(values)
            if has_postal_code:
                await wizard.change_postal_code(postal_code or "")
        except SignupError as e:
            raise to_http_error(e, request_id)
        return to_response(session_id, wizard)

    @app.post("/signup/sessions/{session_id}/advance", response_model=WizardResponse)
    async def advance(session_id: str, request: Request) -> WizardResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            wizard = engine.get_wizard(session_id)
            outcome = await wizard.advance()
        except SignupError as e:
            raise to_http_error(e, request_id)

        logger.info(
            f"Avanço solicitado: request_id={request_id}, session_id={session_id}, "
            f"advanced={outcome.advanced}, stage={outcome.state.stage.value}"
        )
        return to_response(session_id, wizard)

    @app.post("/signup/sessions/{session_id}/back", response_model=WizardResponse)
    def back(session_id: str, request: Request) -> WizardResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            wizard = engine.get_wizard(session_id)
            wizard.back()
        except SignupError as e:
            raise to_http_error(e, request_id)
        return to_response(session_id, wizard)

    @app.post("/signup/sessions/{session_id}/installment-plan", response_model=WizardResponse)
    async def request_installment_plan(session_id: str, request: Request) -> WizardResponse:
        """
        Gera o carnê. Com sucesso, o cadastro termina e a sessão é descartada;
        a resposta ainda traz o link do carnê.
        """
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            wizard = engine.get_wizard(session_id)
            await wizard.request_installment_plan()
        except SignupError as e:
            raise to_http_error(e, request_id)

        response = to_response(session_id, wizard)
        engine.release_if_completed(session_id)
        return response

    @app.delete("/signup/sessions/{session_id}")
    def abandon_session(session_id: str) -> dict:
        engine.discard_session(session_id)
        return {"ok": True}

    return app


app = create_app()
