from fastapi import APIRouter, Request

router = APIRouter()

@router.get("/healthz")
async def healthz(request: Request):
    return {"status": "ok", "service": request.app.state.settings.service_name}
