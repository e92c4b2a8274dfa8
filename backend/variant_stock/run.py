"""Start the API with uvicorn using host/port from Settings."""
import uvicorn

from variant_stock.config import get_settings


def main():
    settings = get_settings()
    print(f"Starting Variant Stock API on {settings.host}:{settings.port}...")
    uvicorn.run(
        "variant_stock.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
