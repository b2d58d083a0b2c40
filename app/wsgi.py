from app.archreview import create_app

app = create_app()
