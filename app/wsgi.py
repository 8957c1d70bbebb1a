from app.ledgerly import create_app

app = create_app()
