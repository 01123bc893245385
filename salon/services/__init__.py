"""Business services that sit between the routes and the models."""
