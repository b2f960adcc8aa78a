"""Domain model: value objects, material snapshots, the ManufacturingOrder entity and its events"""
