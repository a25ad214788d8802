# checkout/product_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Product Service (dev mock)")


PROVIDERS = {
    1: {"id": 1, "name": "Demo Provider"},
}

PRODUCTS = {
    1: {"id": 1, "name": "Keyboard", "price": "199.99", "available_quantity": 10, "provider_id": 1},
    2: {"id": 2, "name": "Mouse", "price": "49.50", "available_quantity": 25, "provider_id": 1},
    3: {"id": 3, "name": "Monitor", "price": "899.00", "available_quantity": 3, "provider_id": 1},
}


@app.get("/products/{product_id}")
def get_product(product_id: int):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.get("/providers/{provider_id}")
def get_provider(provider_id: int):
    provider = PROVIDERS.get(provider_id)
    if not provider:
        raise HTTPException(status_code=404, detail="Provider not found")
    return provider
