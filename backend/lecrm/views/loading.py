"""
LECRM Backend — Loading Screen View
====================================

What:  Static placeholder page shown while the frontend boots: a centered
       logo, a spinning ring and "Loading..." text.
How:   Plain HTML with inline CSS. The logo hides itself through its
       `onerror` attribute when the image cannot be loaded; there is no
       other script and no state.
"""

from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from lecrm.config import Settings
from lecrm.dependencies import get_settings

router = APIRouter(tags=["Views"])

LOADING_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>LECRM</title>
<style>
  html, body {{ height: 100%; margin: 0; }}
  .loading-screen {{
    min-height: 100%;
    display: flex;
    flex-direction: column;
    align-items: center;
    justify-content: center;
    gap: 1.5rem;
    background: #f8fafc;
    font-family: system-ui, -apple-system, "Segoe UI", sans-serif;
    color: #475569;
  }}
  .loading-logo {{ width: 96px; height: 96px; object-fit: contain; }}
  .loading-spinner {{
    width: 40px;
    height: 40px;
    border: 4px solid #e2e8f0;
    border-top-color: #0f172a;
    border-radius: 50%;
    animation: spin 0.8s linear infinite;
  }}
  .loading-text {{ margin: 0; font-size: 0.95rem; }}
  @keyframes spin {{ to {{ transform: rotate(360deg); }} }}
</style>
</head>
<body>
<div class="loading-screen">
  <img class="loading-logo" src="{logo_url}" alt="LECRM" onerror="this.style.display='none'">
  <div class="loading-spinner" role="status" aria-label="Loading"></div>
  <p class="loading-text">Loading...</p>
</div>
</body>
</html>
"""


def render_loading_page(logo_url: str) -> str:
    return LOADING_TEMPLATE.format(logo_url=escape(logo_url, quote=True))


@router.get("/loading", response_class=HTMLResponse, summary="Loading screen")
async def loading_screen(settings: Settings = Depends(get_settings)) -> HTMLResponse:
    return HTMLResponse(render_loading_page(settings.loading_logo_url))
