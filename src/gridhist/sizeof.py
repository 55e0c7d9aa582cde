def register(sizeof):
    @sizeof.register_lazy("gridhist")
    def lazy_register_gridhist_Histogram():
        import dask

        from gridhist.histogram import Histogram

        @sizeof.register(Histogram)
        def register_gridhist_Histogram(data):
            return dask.sizeof.sizeof(data.values(flow=True))
