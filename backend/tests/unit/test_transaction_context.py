import pytest

from dspace_api.core.domain.context import TransactionContext


@pytest.mark.asyncio
async def test_complete_commits_and_cannot_be_repeated(contexts, fake_pool):
	async with contexts.open() as context:
		await context.complete()
		assert context.state == "completed"
		with pytest.raises(RuntimeError):
			await context.complete()
		with pytest.raises(RuntimeError):
			await context.abort()

	assert fake_pool.events == ["acquire", "start", "commit", "release"]


@pytest.mark.asyncio
async def test_exception_aborts_and_runs_compensations_in_reverse(contexts, fake_pool):
	undone: list[str] = []

	async def _async_undo():
		undone.append("second")

	with pytest.raises(ValueError):
		async with contexts.open() as context:
			context.on_abort(lambda: undone.append("first"))
			context.on_abort(_async_undo)
			raise ValueError("boom")

	assert context.state == "aborted"
	assert undone == ["second", "first"]
	assert fake_pool.events == ["acquire", "start", "rollback", "release"]


@pytest.mark.asyncio
async def test_unfinished_context_is_aborted_on_exit(contexts, fake_pool):
	undone: list[str] = []

	async with contexts.open(readonly=True) as context:
		context.on_abort(lambda: undone.append("file"))

	assert context.state == "aborted"
	assert undone == ["file"]
	assert fake_pool.readonly == [True]
	assert fake_pool.events == ["acquire", "start", "rollback", "release"]


@pytest.mark.asyncio
async def test_failed_compensation_does_not_stop_the_others(contexts):
	undone: list[str] = []

	def _broken():
		raise OSError("disk gone")

	async with contexts.open() as context:
		context.on_abort(lambda: undone.append("first"))
		context.on_abort(_broken)
		await context.abort()

	assert undone == ["first"]


@pytest.mark.asyncio
async def test_failed_commit_skips_rollback_but_compensates(contexts, fake_pool):
	fake_pool.fail_commit = True
	undone: list[str] = []

	with pytest.raises(ConnectionError):
		async with contexts.open() as context:
			context.on_abort(lambda: undone.append("file"))
			await context.complete()

	assert context.state == "aborted"
	assert undone == ["file"]
	assert "rollback" not in fake_pool.events


@pytest.mark.asyncio
async def test_completed_context_discards_compensations():
	undone: list[str] = []
	context = TransactionContext(conn=None)
	context.on_abort(lambda: undone.append("file"))

	await context.complete()

	assert undone == []
	with pytest.raises(RuntimeError):
		context.on_abort(lambda: None)
