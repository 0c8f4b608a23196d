from .app_factory import create_app

app = create_app()

# uvicorn recordhub.main:app --reload
