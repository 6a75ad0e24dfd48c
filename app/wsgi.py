from app.docutrack import create_app

app = create_app()
