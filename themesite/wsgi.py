from themesite import create_app

app = create_app()
