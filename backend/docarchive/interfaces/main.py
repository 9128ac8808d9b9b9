from ..infrastructure.app_factory import create_application
from ..infrastructure.config.settings import get_settings
from ..interfaces.api import router as api_router

settings = get_settings()

app = create_application(
    router=api_router,
    settings=settings,
    summary="Analyze, review and archive historical documents",
    description="""
    # Historical Document Archive API

    Browse source files in external storage, extract their structure with an
    AI model, review the result and commit it to a searchable archive of
    documents linked to the people, places, units, organisations, events and
    dates they mention.

    ## Features

    - Session tokens with USER and ADMIN roles
    - Analyze, review, commit pipeline per user and file
    - Filtered listing and free-text search over documents and entities
    - Read-only access to the storage provider
    """,
)
