"""
FastAPI main application for the LinkedIn scraper service.
Interactive OpenAPI docs are served at /docs.
"""
from fastapi import FastAPI

from src.api.v1.scrape import router as scrape_router
from src.config import get_settings

app = FastAPI(
    title="LinkedIn Scraper Service (Educational)",
    description="Scrape profiles, companies, posts and job listings through a throttled headless browser",
    version="1.3.0",
)

# Include routers
app.include_router(scrape_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
