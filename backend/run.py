import uvicorn

from onenight.core.game_config import default_game_config


if __name__ == "__main__":
    config = default_game_config()
    uvicorn.run("onenight.main:app", host=config.host, port=config.port, reload=config.reload)
