"""
Service layer.

Each service encapsulates the business logic for one domain.  Endpoints
stay thin and translate service errors into HTTP responses.
"""
