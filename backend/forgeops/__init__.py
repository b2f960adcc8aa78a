"""ForgeOps - manufacturing order lifecycle and material reservation core"""
