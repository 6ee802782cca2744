"""
Business operations shared by the API routes.

Modules:
    workspaces: Workspace lifecycle, membership, ownership and posting schedule
    credits: Credit balance checks, deductions and usage reporting
    posts: Draft creation, updates, listing and moves between workspaces
    scheduling: Publish-queue entries for posts
    voice: Upload validation, transcription and recording deletion
    amplification: LLM post variations and carousels
"""
