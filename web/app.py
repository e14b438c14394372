from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from codetrack import __version__
from codetrack.config import Settings, build_storage, load_settings
from codetrack.problem_manager import ProblemManager
from codetrack.recommender import GeminiRecommender, RecommendationService
from codetrack.stats import StatsAggregator
from codetrack.sync import SyncService, SyncValidationError, build_default_clients

LOGGER = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


def _require_user(request: Request) -> str:
    user_id = str(request.headers.get(USER_HEADER) or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


async def _read_payload(request: Request) -> dict:
    try:
        payload = await request.json()
    except Exception:
        payload = {}
    return payload if isinstance(payload, dict) else {}


def create_app(storage=None, clients=None, recommender=None, settings: Settings = None) -> FastAPI:
    """
    Build the HTTP app around one storage instance.

    Anything not injected is built from the environment settings.
    """
    settings = settings or load_settings()
    storage = storage if storage is not None else build_storage(settings)
    clients = clients if clients is not None else build_default_clients(settings)
    if recommender is None:
        recommender = GeminiRecommender(settings.gemini_api_key, settings.gemini_model)

    manager = ProblemManager(storage)
    aggregator = StatsAggregator(storage)
    sync_service = SyncService(storage, clients)
    recommendations = RecommendationService(storage, aggregator, recommender)

    app = FastAPI(title="codetrack", version=__version__)
    app.state.storage = storage

    @app.get("/api/health")
    async def health() -> dict:
        return {"ok": True, "version": __version__}

    # --- Problems ---

    @app.get("/api/problems")
    async def list_problems(request: Request) -> list:
        user_id = _require_user(request)
        try:
            return [r.to_dict() for r in manager.list_problems(user_id)]
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch problems: {str(e)}")

    @app.post("/api/problems", status_code=201)
    async def add_problem(request: Request) -> dict:
        user_id = _require_user(request)
        payload = await _read_payload(request)
        try:
            record = manager.add_problem(
                user_id,
                name=payload.get("name"),
                platform=payload.get("platform"),
                difficulty=payload.get("difficulty"),
                category=payload.get("category"),
                tags=payload.get("tags") if isinstance(payload.get("tags"), list) else None,
                url=payload.get("url"),
            )
            return record.to_dict()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create problem: {str(e)}")

    @app.delete("/api/problems")
    async def clear_problems(request: Request) -> dict:
        user_id = _require_user(request)
        try:
            manager.clear_all(user_id)
            return {"ok": True, "message": "All data cleared"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to clear data: {str(e)}")

    @app.patch("/api/problems/{record_id}/difficulty")
    async def update_difficulty(record_id: int, request: Request) -> dict:
        user_id = _require_user(request)
        payload = await _read_payload(request)
        try:
            return manager.set_difficulty(user_id, record_id, payload.get("difficulty")).to_dict()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update difficulty: {str(e)}")

    @app.patch("/api/problems/{record_id}/category")
    async def update_category(record_id: int, request: Request) -> dict:
        user_id = _require_user(request)
        payload = await _read_payload(request)
        try:
            return manager.set_category(user_id, record_id, payload.get("category")).to_dict()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update category: {str(e)}")

    @app.delete("/api/problems/platform/{platform}")
    async def delete_platform(platform: str, request: Request) -> dict:
        user_id = _require_user(request)
        try:
            removed = manager.delete_platform(user_id, platform)
            return {"ok": True, "platform": platform, "deleted": removed}
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete platform data: {str(e)}")

    @app.delete("/api/problems/{record_id}")
    async def delete_problem(record_id: int, request: Request) -> dict:
        user_id = _require_user(request)
        try:
            manager.delete_problem(user_id, record_id)
            return {"ok": True}
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete problem: {str(e)}")

    # --- Stats / activity ---

    @app.get("/api/stats")
    async def stats(request: Request) -> dict:
        user_id = _require_user(request)
        try:
            return aggregator.get_stats(user_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch stats: {str(e)}")

    @app.get("/api/recent-activity")
    async def recent_activity(request: Request, limit: int = 10) -> list:
        user_id = _require_user(request)
        safe_limit = max(1, min(limit, 100))
        try:
            return [r.to_dict() for r in manager.recent_activity(user_id, safe_limit)]
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch recent activity: {str(e)}")

    # --- Recommendations ---

    @app.get("/api/recommendations")
    async def get_recommendations(request: Request) -> list:
        user_id = _require_user(request)
        try:
            return [r.to_dict() for r in storage.get_recommendations(user_id)]
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch recommendations: {str(e)}")

    @app.post("/api/recommendations/generate")
    async def generate_recommendations(request: Request) -> list:
        user_id = _require_user(request)
        try:
            stored = await asyncio.to_thread(recommendations.refresh, user_id)
            return [r.to_dict() for r in stored]
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to generate recommendations: {str(e)}")

    # --- Platform handles ---

    @app.get("/api/platform-credentials")
    async def list_credentials(request: Request) -> list:
        user_id = _require_user(request)
        try:
            return [c.to_dict() for c in manager.list_credentials(user_id)]
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch credentials: {str(e)}")

    @app.post("/api/platform-credentials")
    async def save_credential(request: Request) -> dict:
        user_id = _require_user(request)
        payload = await _read_payload(request)
        try:
            return manager.save_credential(user_id, payload.get("platform"), payload.get("handle")).to_dict()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to save credential: {str(e)}")

    @app.delete("/api/platform-credentials/{credential_id}")
    async def delete_credential(credential_id: int, request: Request) -> dict:
        user_id = _require_user(request)
        try:
            manager.delete_credential(user_id, credential_id)
            return {"ok": True}
        except LookupError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete credential: {str(e)}")

    # --- Sync ---

    @app.post("/api/sync-platforms")
    async def sync_platforms(request: Request) -> dict:
        user_id = _require_user(request)
        payload = await _read_payload(request)
        handles = payload.get("platforms")
        try:
            # Browser clients use the blocking Playwright API, so the cycle runs off the event loop.
            if handles is None:
                report = await asyncio.to_thread(sync_service.sync_saved_credentials, user_id)
            else:
                report = await asyncio.to_thread(sync_service.sync_user_data, user_id, handles)
            return report.to_dict()
        except SyncValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            LOGGER.exception("Sync failed for user %s", user_id)
            raise HTTPException(status_code=500, detail=f"Failed to sync platforms: {str(e)}")

    # --- Export ---

    @app.get("/api/export")
    async def export_csv(request: Request) -> Response:
        user_id = _require_user(request)
        try:
            content = manager.export_csv(user_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to export problems: {str(e)}")
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="problems.csv"'},
        )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("Starting codetrack web server...")
    print("Open http://localhost:5000 in your browser")
    uvicorn.run(create_app(settings=settings), host="127.0.0.1", port=5000)
