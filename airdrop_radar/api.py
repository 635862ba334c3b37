"""
HTTP API（FastAPI）

■ 公開:   GET /health, GET /airdrops, GET /airdrops/{id}, GET /categories,
          GET /scraper/run, POST /eligibility/check
■ 管理者: PUT/DELETE /airdrops/{id}, POST /scraper/run
          Authorization: Bearer <ADMIN_TOKEN>（トークン未設定なら認証なし）

ルール（rules）は公開レスポンスに含めない。
エラーは {"success": false, "error": "..."} 形式で返す。
"""
import logging
import secrets
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import config
from .discovery import ScraperRunner
from .eligibility import evaluate, evaluate_all, total_estimated_value
from .fetcher import FetchError
from .models import FRICTION_LEVELS, STATUSES, AirdropFilters, EligibilityResult, to_iso, utcnow
from .sanitizer import sanitize
from .store import AirdropStore
from .wallet import WalletScanner, validate_address

logger = logging.getLogger(__name__)


# ── リクエストモデル ──

class ScraperRunRequest(BaseModel):
    sources: Optional[list[str]] = None
    limit: Optional[int] = Field(None, ge=1, le=500)
    minConfidence: Optional[float] = Field(None, ge=0, le=1)


class EligibilityCheckRequest(BaseModel):
    walletAddress: str = ""
    airdropId: Optional[str] = None


def _public_result(result: EligibilityResult, message: str) -> dict:
    """判定結果から不足条件の詳細を除いたもの"""
    data = result.to_dict()
    data.pop("missingRequirements", None)
    data.pop("reason", None)
    data["message"] = message
    return data


def create_app(
    store: AirdropStore,
    runner: Optional[ScraperRunner] = None,
    scanner: Optional[WalletScanner] = None,
    admin_token: Optional[str] = None,
) -> FastAPI:
    """依存を注入して FastAPI アプリを生成"""
    token = config.admin_token if admin_token is None else admin_token

    app = FastAPI(
        title="Airdrop Radar API",
        description="Airdrop discovery, listing and wallet eligibility checks.",
        version=__version__,
    )

    # ── エラーハンドラ ──

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.error(f"API 内部エラー: {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    # ── 認証 ──

    def require_admin(authorization: Optional[str] = Header(None)):
        if not token:
            return
        if not authorization or not secrets.compare_digest(authorization, f"Bearer {token}"):
            raise HTTPException(status_code=401, detail="Unauthorized")

    # ── ルート ──

    @app.get("/health")
    def health():
        return {
            "success": True,
            "status": "healthy",
            "timestamp": to_iso(utcnow()),
            "version": __version__,
        }

    @app.get("/airdrops")
    def list_airdrops(
        status: str = "live",
        category: Optional[str] = None,
        friction: Optional[str] = None,
        verified: Optional[bool] = None,
        featured: Optional[bool] = None,
        search: Optional[str] = None,
    ):
        if status != "all" and status not in STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
        if friction is not None and friction not in FRICTION_LEVELS:
            raise HTTPException(status_code=400, detail=f"Invalid friction level: {friction}")

        filters = AirdropFilters(
            status=None if status == "all" else status,
            category=sanitize(category) or None,
            friction_level=friction,
            verified=verified,
            featured=featured,
            search=sanitize(search) or None,
        )
        airdrops = store.query(filters)
        return {
            "success": True,
            "data": [a.to_dict(include_rules=False) for a in airdrops],
            "count": len(airdrops),
            "filters": {
                "status": status,
                "category": filters.category,
                "frictionLevel": friction,
            },
        }

    @app.get("/airdrops/{airdrop_id}")
    def get_airdrop(airdrop_id: str):
        airdrop = store.get(airdrop_id)
        if airdrop is None:
            raise HTTPException(status_code=404, detail="Airdrop not found")
        return {"success": True, "data": airdrop.to_dict(include_rules=False)}

    @app.put("/airdrops/{airdrop_id}", dependencies=[Depends(require_admin)])
    async def update_airdrop(airdrop_id: str, request: Request):
        try:
            changes = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        if not isinstance(changes, dict):
            raise HTTPException(status_code=400, detail="Request body must be an object")

        try:
            updated = store.update(airdrop_id, changes)
        except KeyError:
            raise HTTPException(status_code=404, detail="Airdrop not found")
        except (ValueError, TypeError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "message": "Airdrop updated successfully", "data": updated.to_dict()}

    @app.delete("/airdrops/{airdrop_id}", dependencies=[Depends(require_admin)])
    def delete_airdrop(airdrop_id: str):
        if not store.delete(airdrop_id):
            raise HTTPException(status_code=404, detail="Airdrop not found")
        logger.info(f"管理者削除: {airdrop_id}")
        return {"success": True, "message": "Airdrop deleted successfully"}

    @app.get("/categories")
    def categories():
        counts = store.category_counts()
        data = [{"name": name, "count": count} for name, count in counts.items()]
        return {"success": True, "data": data, "total": sum(counts.values())}

    @app.post("/scraper/run", dependencies=[Depends(require_admin)])
    async def run_scraper(body: Optional[ScraperRunRequest] = None):
        if runner is None:
            raise HTTPException(status_code=503, detail="Scraper not configured")
        body = body or ScraperRunRequest()
        result = await runner.run(
            sources=body.sources,
            limit=body.limit,
            min_confidence=body.minConfidence,
        )
        return {"success": True, "data": result.to_dict()}

    @app.get("/scraper/run")
    def scraper_status():
        last = runner.last_run if runner is not None else None
        return {
            "success": True,
            "data": {
                "lastRun": last.summary() if last is not None else None,
                "stats": store.stats(),
                "nextRunAt": to_iso(runner.next_run_at()) if runner is not None else None,
            },
        }

    @app.post("/eligibility/check")
    async def check_eligibility(body: EligibilityCheckRequest):
        address = body.walletAddress.strip()
        if not validate_address(address):
            raise HTTPException(status_code=400, detail="Valid wallet address required")
        if scanner is None:
            raise HTTPException(status_code=503, detail="Wallet scanner not configured")

        airdrop = None
        if body.airdropId:
            airdrop = store.get(body.airdropId)
            if airdrop is None or airdrop.status != "live":
                raise HTTPException(status_code=404, detail="Airdrop not found")

        try:
            activity = await scanner.scan(address)
        except FetchError as e:
            logger.warning(f"ウォレットスキャン失敗: {address[:8]}...: {e}")
            raise HTTPException(status_code=502, detail="Failed to scan wallet")

        if airdrop is not None:
            result = evaluate(activity, airdrop)
            message = (
                "Wallet is eligible for this airdrop" if result.eligible
                else "Wallet does not meet eligibility requirements"
            )
            return {"success": True, "data": _public_result(result, message)}

        results = evaluate_all(activity, store.list_all())
        return {
            "success": True,
            "data": {
                "results": [
                    _public_result(r, "Eligible" if r.eligible else "Not eligible") for r in results
                ],
                "summary": {
                    "totalAirdrops": len(results),
                    "eligibleCount": sum(1 for r in results if r.eligible),
                    "totalEstimatedValue": total_estimated_value(results),
                },
            },
        }

    return app
