# Guardian Kids - API Layer
