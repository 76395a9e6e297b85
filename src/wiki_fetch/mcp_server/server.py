from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from wiki_fetch.wiki_to_markdown import WikiClient


app = FastAPI(
    title="Wiki-Fetch MCP Server",
    version="0.1.0",
    description="FastAPI-based MCP-like server exposing the wiki_search tool.",
)


# ----- Pydantic models -----


class WikiSearchArgs(BaseModel):
    text: str = Field(..., min_length=1, description="Title of the Wikipedia article.")
    lang: Optional[str] = Field(
        default=None,
        description="Wikipedia language code. If omitted, WIKI_FETCH_LANG then 'en' is used.",
    )


class ToolInvokeRequest(BaseModel):
    tool: str = Field(..., description="Tool to invoke.")
    args: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the tool.")


class ToolInvokeResponse(BaseModel):
    ok: bool
    result: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None


# ----- Endpoints -----


@app.get("/", tags=["meta"])
def root() -> Dict[str, Any]:
    return {"name": "wiki-fetch-mcp", "version": "0.1.0"}


@app.get("/tools", tags=["discovery"])
def get_tools() -> Dict[str, Any]:
    return {
        "tools": [
            {
                "name": "wiki_search",
                "description": "Fetch a Wikipedia article and convert its body (headings, paragraphs, emphasis, math) to Markdown.",
                "params": {
                    "text": {"type": "string", "required": True, "description": "Article title"},
                    "lang": {"type": "string", "required": False, "default": "en"},
                },
            },
        ]
    }


@app.post("/invoke", response_model=ToolInvokeResponse, tags=["invoke"])
def invoke(request: ToolInvokeRequest) -> ToolInvokeResponse:
    if request.tool == "wiki_search":
        try:
            args = WikiSearchArgs(**request.args)
        except ValidationError as e:
            # 422 to mirror FastAPI's validation response for missing/invalid args
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
        result = WikiClient(args.lang).search(args.text)
        if result.ok:
            return ToolInvokeResponse(ok=True, result=result.data)
        return ToolInvokeResponse(ok=False, error=result.error, details=result.details)

    # Unknown tool: structured error (200 with ok=false) so callers get a consistent payload.
    return ToolInvokeResponse(ok=False, error=f"Unknown tool: {request.tool}")


def main() -> None:
    import uvicorn

    uvicorn.run("wiki_fetch.mcp_server.server:app", host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
